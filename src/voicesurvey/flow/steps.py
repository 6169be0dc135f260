"""
Pydantic schemas for the call-flow instruction document.

The document is built fresh for every callback and never persisted:

    {"title": "...", "steps": [{"action": "say", "options": {...}},
                               {"action": "record", "options": {...}}]}
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SayOptions(BaseModel):
    """Options of a ``say`` step."""

    payload: str = Field(..., min_length=1, description="Text spoken to the caller")
    voice: str = Field(default="male")
    language: str = Field(default="en-US")

    model_config = ConfigDict(frozen=True)


class RecordOptions(BaseModel):
    """Options of a ``record`` step; passed through to the platform as-is."""

    finish_on_key: str = Field(default="any", alias="finishOnKey")
    timeout: int = Field(default=10, ge=1, description="Silence timeout in seconds")
    on_finish: str = Field(..., alias="onFinish", description="Callback URL for the recording")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SayStep(BaseModel):
    action: Literal["say"] = "say"
    options: SayOptions

    model_config = ConfigDict(frozen=True)


class RecordStep(BaseModel):
    action: Literal["record"] = "record"
    options: RecordOptions

    model_config = ConfigDict(frozen=True)


FlowStep = Annotated[SayStep | RecordStep, Field(discriminator="action")]


class FlowDocument(BaseModel):
    """Ordered instruction sequence returned to the telephony platform."""

    title: str
    steps: list[FlowStep] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def record_count(self) -> int:
        return sum(1 for step in self.steps if isinstance(step, RecordStep))

    @property
    def spoken_texts(self) -> list[str]:
        return [step.options.payload for step in self.steps if isinstance(step, SayStep)]

    def to_payload(self) -> dict[str, Any]:
        """Serialize with the platform's camelCase option names."""
        return self.model_dump(by_alias=True)


def say(payload: str, voice: str = "male", language: str = "en-US") -> SayStep:
    """Build a ``say`` step."""
    return SayStep(options=SayOptions(payload=payload, voice=voice, language=language))


def record(on_finish: str, finish_on_key: str = "any", timeout: int = 10) -> RecordStep:
    """Build a ``record`` step whose result is posted to ``on_finish``."""
    return RecordStep(
        options=RecordOptions(finish_on_key=finish_on_key, timeout=timeout, on_finish=on_finish)
    )
