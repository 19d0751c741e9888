class SessionError(Exception):
    pass


class DeviceUnavailable(SessionError):
    pass


class ConnectFailed(SessionError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransportError(SessionError):
    pass


class InvalidStateTransition(SessionError):
    pass


class SendAfterClose(SessionError):
    pass


class SessionCancelled(SessionError):
    pass
