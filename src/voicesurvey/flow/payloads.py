"""
Parsing of the recording-finished callback body.
"""

import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from voicesurvey.participants.domain import RECORDING_REF_MAX_LENGTH, Answer
from voicesurvey.shared.exceptions import MalformedCallbackPayload


class RecordingCallback(BaseModel):
    """Body posted by the platform when a ``record`` step finishes."""

    leg_id: str = Field(..., alias="legId", min_length=1, max_length=RECORDING_REF_MAX_LENGTH)
    recording_id: str = Field(..., alias="id", min_length=1, max_length=RECORDING_REF_MAX_LENGTH)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_answer(self) -> Answer:
        return Answer(leg_id=self.leg_id, recording_ref=self.recording_id)


def parse_recording_callback(body: bytes | str | None) -> Answer | None:
    """Turn a callback body into an answer.

    Returns None when there is no body (the first callback of a call).

    Raises:
        MalformedCallbackPayload: The body is present but is not a JSON
            object carrying string ``legId`` and ``id`` fields.
    """
    if body is None:
        return None
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedCallbackPayload(
                "Callback body is not UTF-8",
                details={"error": str(exc)},
            ) from exc
    if not body.strip():
        return None

    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedCallbackPayload(
            "Callback body is not valid JSON",
            details={"error": exc.msg, "position": exc.pos},
        ) from exc

    if not isinstance(data, dict):
        raise MalformedCallbackPayload(
            "Callback body must be a JSON object",
            details={"type": type(data).__name__},
        )

    try:
        callback = RecordingCallback.model_validate(data, strict=True)
    except ValidationError as exc:
        raise MalformedCallbackPayload(
            "Callback body lacks a recording reference",
            details={"errors": [".".join(str(p) for p in e["loc"]) for e in exc.errors()]},
        ) from exc

    return callback.to_answer()
