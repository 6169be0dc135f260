"""
In-memory participant store for tests and local runs.
"""

import asyncio
from collections.abc import Sequence

from voicesurvey.participants.domain import Answer, AppendResult, Participant
from voicesurvey.shared.exceptions import ParticipantNotFound
from voicesurvey.shared.logging import get_logger

logger = get_logger(__name__)


class InMemoryParticipantStore:
    """Participant store kept in a dict.

    Each call id gets its own ``asyncio.Lock`` so appends for one call are
    serialised while other calls proceed untouched.
    """

    def __init__(self) -> None:
        self._participants: dict[str, Participant] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, call_id: str) -> asyncio.Lock:
        lock = self._locks.get(call_id)
        if lock is None:
            lock = self._locks.setdefault(call_id, asyncio.Lock())
        return lock

    def reset(self) -> None:
        self._participants.clear()
        self._locks.clear()

    async def find_by_call_id(self, call_id: str) -> Participant | None:
        return self._participants.get(call_id)

    async def create(self, call_id: str, destination_number: str | None) -> Participant:
        async with self._lock_for(call_id):
            existing = self._participants.get(call_id)
            if existing is not None:
                return existing
            participant = Participant(call_id=call_id, destination_number=destination_number)
            self._participants[call_id] = participant
            logger.info(
                "Participant created",
                extra={"call_id": call_id, "destination_number": destination_number},
            )
            return participant

    async def append_answer(self, call_id: str, answer: Answer, limit: int) -> AppendResult:
        # Participants are only removed by reset(), so locks exist only for known calls.
        if call_id not in self._participants:
            raise ParticipantNotFound(call_id)
        async with self._lock_for(call_id):
            participant = self._participants[call_id]
            count = participant.answered_count
            if participant.has_answer(answer) or count >= limit:
                logger.info(
                    "Answer not appended",
                    extra={
                        "call_id": call_id,
                        "answered_count": count,
                        "duplicate": participant.has_answer(answer),
                    },
                )
                return AppendResult(answered_count=count, appended=False)

            self._participants[call_id] = Participant(
                call_id=participant.call_id,
                destination_number=participant.destination_number,
                answers=participant.answers + (answer,),
                created_at=participant.created_at,
            )
            return AppendResult(answered_count=count + 1, appended=True)

    async def list_all(self) -> Sequence[Participant]:
        return sorted(self._participants.values(), key=lambda p: p.created_at)
