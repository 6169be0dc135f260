"""
Participant store contract consumed by the call-flow engine.
"""

from collections.abc import Sequence
from typing import Protocol

from voicesurvey.participants.domain import Answer, AppendResult, Participant


class ParticipantStoreProtocol(Protocol):
    """Protocol for participant store operations.

    Implementations must make ``append_answer`` atomic per call id and must
    never serialise operations on different call ids behind one lock.
    """

    async def find_by_call_id(self, call_id: str) -> Participant | None:
        """Get a participant by call identifier."""
        ...

    async def create(self, call_id: str, destination_number: str | None) -> Participant:
        """Create a participant with no answers.

        Creating a call id that already exists returns the existing record.
        """
        ...

    async def append_answer(self, call_id: str, answer: Answer, limit: int) -> AppendResult:
        """Append an answer unless it is a duplicate or ``limit`` is reached."""
        ...

    async def list_all(self) -> Sequence[Participant]:
        """List every participant, oldest first."""
        ...
