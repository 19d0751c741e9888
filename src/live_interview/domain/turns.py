from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class Speaker(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    speaker: Speaker
    text: str
    index: int


DEFAULT_LABELS: dict[Speaker, str] = {
    Speaker.USER: "Usuario",
    Speaker.ASSISTANT: "Entrevistador",
}


class TurnReconciler:
    """Folds partial transcripts into an append-only sequence of turns.

    In cumulative mode each partial carries the full text so far and replaces
    the previous one. In delta mode partials are fragments and get appended.
    """

    def __init__(self, append_partials: bool = False) -> None:
        self._append_partials = append_partials
        self._partials: dict[Speaker, str] = {Speaker.USER: "", Speaker.ASSISTANT: ""}
        self._turns: list[Turn] = []

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def append_partials(self) -> bool:
        return self._append_partials

    def partial(self, speaker: Speaker) -> str:
        return self._partials[speaker]

    def on_partial(self, speaker: Speaker, text: str) -> str:
        if self._append_partials:
            self._partials[speaker] += text
        else:
            self._partials[speaker] = text
        return self._partials[speaker]

    def on_turn_complete(
        self,
        user_text: str | None = None,
        assistant_text: str | None = None,
    ) -> list[Turn]:
        finalized: list[Turn] = []
        for speaker, text in ((Speaker.USER, user_text), (Speaker.ASSISTANT, assistant_text)):
            if not text:
                continue
            turn = Turn(speaker=speaker, text=text, index=len(self._turns))
            self._turns.append(turn)
            self._partials[speaker] = ""
            finalized.append(turn)
        return finalized

    def finalize_pending(self) -> list[Turn]:
        return self.on_turn_complete(
            self._partials[Speaker.USER],
            self._partials[Speaker.ASSISTANT],
        )

    def transcript(self, labels: dict[Speaker, str] | None = None) -> str:
        return format_transcript(self._turns, labels)


def format_transcript(turns: Iterable[Turn], labels: dict[Speaker, str] | None = None) -> str:
    labels = labels or DEFAULT_LABELS
    return "\n\n".join(f"[{labels[turn.speaker]}]: {turn.text}" for turn in turns)


def user_text(turns: Iterable[Turn]) -> str:
    return "\n\n".join(turn.text for turn in turns if turn.speaker == Speaker.USER)
