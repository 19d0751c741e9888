"""Gemini Live ``BidiGenerateContent`` wire format.

Builders for the outbound JSON messages and the demultiplexer that turns
inbound server messages into ``InboundEvent`` variants. Nothing outside this
module and ``gemini_live`` knows the shape of the wire messages.
"""
import base64
import binascii
import json
from typing import Any

from live_interview.domain.categories import InterviewCategory, build_system_instruction
from live_interview.domain.events import (
    AssistantAudio,
    AssistantTranscript,
    Ignored,
    InboundEvent,
    Interrupted,
    ServiceError,
    TurnComplete,
    UserTranscript,
)

DEFAULT_MODEL = "models/gemini-2.5-flash-native-audio-preview-09-2025"
DEFAULT_VOICE = "Aoede"
INPUT_SAMPLE_RATE = 16000

OPENING_PROMPT = "Inicia la entrevista saludando y haciendo esta pregunta: {question}"


def setup_message(category: InterviewCategory, model: str = DEFAULT_MODEL, voice: str = DEFAULT_VOICE) -> dict:
    return {
        "setup": {
            "model": model,
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
                },
            },
            "systemInstruction": {"parts": [{"text": build_system_instruction(category)}]},
            "inputAudioTranscription": {},
            "outputAudioTranscription": {},
        }
    }


def audio_message(frame: bytes, sample_rate: int = INPUT_SAMPLE_RATE) -> dict:
    return {
        "realtimeInput": {
            "audio": {
                "data": base64.b64encode(frame).decode("ascii"),
                "mimeType": f"audio/pcm;rate={sample_rate}",
            }
        }
    }


def text_message(text: str) -> dict:
    return {
        "clientContent": {
            "turns": [{"role": "user", "parts": [{"text": text}]}],
            "turnComplete": True,
        }
    }


def opening_message(category: InterviewCategory) -> dict | None:
    if not category.opening_question:
        return None
    return text_message(OPENING_PROMPT.format(question=category.opening_question))


def decode_message(raw: str | bytes) -> Any:
    """Parse one websocket frame. Raises ``ValueError`` on undecodable input."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def is_setup_complete(message: Any) -> bool:
    return isinstance(message, dict) and "setupComplete" in message


class GeminiLiveDemultiplexer:
    def __init__(self, partials_are_deltas: bool = True) -> None:
        self._partials_are_deltas = partials_are_deltas

    @property
    def partials_are_deltas(self) -> bool:
        return self._partials_are_deltas

    def classify(self, raw: Any) -> tuple[InboundEvent, ...]:
        if not isinstance(raw, dict):
            return (Ignored(reason=f"non-object message ({type(raw).__name__})"),)

        if "error" in raw:
            return (ServiceError(message=_error_text(raw["error"])),)

        content = raw.get("serverContent")
        if not isinstance(content, dict):
            known = next((key for key in raw if isinstance(key, str)), "empty")
            return (Ignored(reason=known),)

        events: list[InboundEvent] = []

        user_text = _transcription_text(content.get("inputTranscription"))
        if user_text:
            events.append(UserTranscript(text=user_text))

        assistant_text = _transcription_text(content.get("outputTranscription"))
        if assistant_text:
            events.append(AssistantTranscript(text=assistant_text))

        events.extend(_audio_parts(content.get("modelTurn")))

        if content.get("interrupted"):
            events.append(Interrupted())

        if content.get("turnComplete"):
            events.append(TurnComplete())

        if not events:
            return (Ignored(reason="serverContent without transcript, audio or turn marker"),)
        return tuple(events)


def _transcription_text(transcription: Any) -> str:
    if not isinstance(transcription, dict):
        return ""
    text = transcription.get("text")
    return text if isinstance(text, str) else ""


def _audio_parts(model_turn: Any) -> list[AssistantAudio]:
    if not isinstance(model_turn, dict):
        return []
    parts = model_turn.get("parts")
    if not isinstance(parts, list):
        return []

    chunks = []
    for part in parts:
        inline = part.get("inlineData") if isinstance(part, dict) else None
        if not isinstance(inline, dict):
            continue
        mime_type = inline.get("mimeType", "")
        data = inline.get("data")
        if not isinstance(mime_type, str) or not mime_type.startswith("audio/"):
            continue
        if not isinstance(data, str):
            continue
        try:
            decoded = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            continue
        chunks.append(AssistantAudio(data=decoded, mime_type=mime_type))
    return chunks


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message") or error.get("status") or "unknown error"
        code = error.get("code")
        return f"{code}: {message}" if code else str(message)
    return str(error)
