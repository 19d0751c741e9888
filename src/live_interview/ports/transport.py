from collections.abc import Callable
from typing import Any, Protocol

from live_interview.domain.categories import InterviewCategory
from live_interview.domain.errors import TransportError
from live_interview.domain.events import InboundEvent

MessageHandler = Callable[[Any], None]
TransportErrorHandler = Callable[[TransportError], None]


class LiveTransportPort(Protocol):
    async def open(self, category: InterviewCategory) -> None: ...
    def send(self, frame: bytes) -> None: ...
    def send_text(self, text: str) -> None: ...
    def on_message(
        self, handler: MessageHandler, error_handler: TransportErrorHandler | None = None
    ) -> None: ...
    async def close(self, drain: bool = True) -> None: ...


class DemultiplexerPort(Protocol):
    @property
    def partials_are_deltas(self) -> bool: ...
    def classify(self, raw: Any) -> tuple[InboundEvent, ...]: ...
