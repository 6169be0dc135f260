"""
Repository for participant database operations.

Appends are atomic at the storage layer: the participant row is locked
(``SELECT ... FOR UPDATE``) while the next position is computed, and the
unique constraints on ``(participant_id, position)`` and
``(participant_id, leg_id, recording_ref)`` reject any write that slips past
the lock on backends without row locking (SQLite). A rejected write means
another writer committed an answer for the same call, so the count only grows
towards ``limit`` and ``limit + 1`` attempts always settle the append.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from voicesurvey.participants.domain import Answer, AppendResult, Participant
from voicesurvey.participants.models import SurveyAnswer, SurveyParticipant
from voicesurvey.shared.exceptions import ParticipantNotFound, StoreUnavailable
from voicesurvey.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_APPEND_ATTEMPTS = 3


class ParticipantRepository:
    """SQL implementation of the participant store."""

    def __init__(
        self,
        session: AsyncSession,
        max_append_attempts: int = DEFAULT_APPEND_ATTEMPTS,
    ) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
            max_append_attempts: Minimum attempts when a concurrent append wins
                the race; raised to ``limit + 1`` per call.
        """
        self._session = session
        self._max_append_attempts = max_append_attempts

    @asynccontextmanager
    async def _store_errors(self, operation: str, call_id: str | None = None) -> AsyncIterator[None]:
        try:
            yield
        except (OperationalError, InterfaceError, OSError) as exc:
            logger.error(
                "Participant store unavailable",
                extra={"operation": operation, "call_id": call_id, "error": str(exc)},
            )
            raise StoreUnavailable(details={"operation": operation}) from exc

    async def _get_row(self, call_id: str) -> SurveyParticipant | None:
        stmt = (
            select(SurveyParticipant)
            .where(SurveyParticipant.call_id == call_id)
            .options(selectinload(SurveyParticipant.answers))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_call_id(self, call_id: str) -> Participant | None:
        """Get participant by call identifier.

        Args:
            call_id: Platform call identifier.

        Returns:
            Participant if found, None otherwise.
        """
        async with self._store_errors("find_by_call_id", call_id):
            row = await self._get_row(call_id)
        return row.to_domain() if row is not None else None

    async def create(self, call_id: str, destination_number: str | None) -> Participant:
        """Create a participant with an empty answer list.

        A concurrent create for the same call id loses on the unique
        constraint; the existing row is returned in that case.
        """
        async with self._store_errors("create", call_id):
            existing = await self._get_row(call_id)
            if existing is not None:
                return existing.to_domain()

            row = SurveyParticipant(call_id=call_id, destination_number=destination_number)
            self._session.add(row)
            try:
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
                logger.info("Participant created concurrently", extra={"call_id": call_id})
                existing = await self._get_row(call_id)
                if existing is None:
                    raise
                return existing.to_domain()

        logger.info(
            "Participant created",
            extra={"call_id": call_id, "destination_number": destination_number},
        )
        return Participant(
            call_id=row.call_id,
            destination_number=row.destination_number,
            created_at=row.created_at,
        )

    async def _append_once(self, call_id: str, answer: Answer, limit: int) -> AppendResult:
        locked = await self._session.execute(
            select(SurveyParticipant.id)
            .where(SurveyParticipant.call_id == call_id)
            .with_for_update()
        )
        participant_id = locked.scalar_one_or_none()
        if participant_id is None:
            raise ParticipantNotFound(call_id)

        rows = await self._session.execute(
            select(SurveyAnswer.leg_id, SurveyAnswer.recording_ref)
            .where(SurveyAnswer.participant_id == participant_id)
            .order_by(SurveyAnswer.position)
        )
        existing = [Answer(leg_id=r.leg_id, recording_ref=r.recording_ref) for r in rows]
        count = len(existing)

        if answer in existing:
            logger.info(
                "Duplicate answer delivery ignored",
                extra={"call_id": call_id, "leg_id": answer.leg_id, "answered_count": count},
            )
            return AppendResult(answered_count=count, appended=False)

        if count >= limit:
            logger.warning(
                "Answer received after survey completion; not stored",
                extra={"call_id": call_id, "answered_count": count, "limit": limit},
            )
            return AppendResult(answered_count=count, appended=False)

        self._session.add(
            SurveyAnswer(
                participant_id=participant_id,
                position=count,
                leg_id=answer.leg_id,
                recording_ref=answer.recording_ref,
            )
        )
        await self._session.flush()
        return AppendResult(answered_count=count + 1, appended=True)

    async def append_answer(self, call_id: str, answer: Answer, limit: int) -> AppendResult:
        """Atomically append an answer at the next free position.

        Args:
            call_id: Platform call identifier.
            answer: The finished recording.
            limit: Number of questions; the list never grows past it.

        Returns:
            AppendResult with the authoritative count after the operation.

        Raises:
            ParticipantNotFound: No participant exists for ``call_id``.
            StoreUnavailable: The database cannot be reached.
        """
        attempts = max(self._max_append_attempts, limit + 1)
        async with self._store_errors("append_answer", call_id):
            for attempt in range(1, attempts + 1):
                try:
                    result = await self._append_once(call_id, answer, limit)
                    await self._session.commit()
                except IntegrityError:
                    await self._session.rollback()
                    logger.info(
                        "Concurrent answer append detected; retrying",
                        extra={"call_id": call_id, "attempt": attempt},
                    )
                    continue
                except ParticipantNotFound:
                    await self._session.rollback()
                    raise

                if result.appended:
                    logger.info(
                        "Answer stored",
                        extra={
                            "call_id": call_id,
                            "position": result.answered_count - 1,
                            "leg_id": answer.leg_id,
                            "recording_ref": answer.recording_ref,
                        },
                    )
                return result

        raise StoreUnavailable(
            "Answer append kept conflicting with concurrent writers",
            details={"call_id": call_id, "attempts": attempts},
        )

    async def list_all(self) -> Sequence[Participant]:
        """List every participant with answers, oldest first."""
        async with self._store_errors("list_all"):
            stmt = (
                select(SurveyParticipant)
                .options(selectinload(SurveyParticipant.answers))
                .order_by(SurveyParticipant.created_at, SurveyParticipant.call_id)
            )
            result = await self._session.execute(stmt)
            return [row.to_domain() for row in result.scalars().all()]
