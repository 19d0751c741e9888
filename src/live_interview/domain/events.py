from dataclasses import dataclass


@dataclass(frozen=True)
class InboundEvent:
    pass


@dataclass(frozen=True)
class UserTranscript(InboundEvent):
    text: str = ""


@dataclass(frozen=True)
class AssistantTranscript(InboundEvent):
    text: str = ""


@dataclass(frozen=True)
class TurnComplete(InboundEvent):
    """End of a conversational turn.

    ``None`` for both texts means the wire did not carry the turn's text and
    the pending partials are what gets finalized.
    """

    user_text: str | None = None
    assistant_text: str | None = None

    @property
    def carries_text(self) -> bool:
        return self.user_text is not None or self.assistant_text is not None


@dataclass(frozen=True)
class AssistantAudio(InboundEvent):
    data: bytes = b""
    mime_type: str = ""


@dataclass(frozen=True)
class Interrupted(InboundEvent):
    pass


@dataclass(frozen=True)
class ServiceError(InboundEvent):
    message: str = ""


@dataclass(frozen=True)
class Ignored(InboundEvent):
    reason: str = ""
