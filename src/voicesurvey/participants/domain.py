"""
Domain records for survey participants.

These are plain value objects returned by every store implementation, so the
call-flow engine never touches ORM instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

# Column widths of the participant tables; inputs are bounded to match.
CALL_ID_MAX_LENGTH = 100
DESTINATION_MAX_LENGTH = 64
RECORDING_REF_MAX_LENGTH = 100


@dataclass(frozen=True)
class Answer:
    """A finished recording reported by the platform."""

    leg_id: str
    recording_ref: str


@dataclass(frozen=True)
class Participant:
    """One participant per call; answers are kept in arrival order."""

    call_id: str
    destination_number: str | None = None
    answers: tuple[Answer, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    def has_answer(self, answer: Answer) -> bool:
        return answer in self.answers


@dataclass(frozen=True)
class AppendResult:
    """Outcome of an atomic answer append.

    ``answered_count`` is the store's authoritative count after the
    operation; ``appended`` is False when the answer was a redelivery or the
    catalog was already exhausted.
    """

    answered_count: int
    appended: bool
