"""
SQLAlchemy models for survey participants and their recorded answers.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voicesurvey.participants.domain import (
    CALL_ID_MAX_LENGTH,
    DESTINATION_MAX_LENGTH,
    RECORDING_REF_MAX_LENGTH,
    Answer,
    Participant,
)
from voicesurvey.shared.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SurveyParticipant(Base):
    """One row per call reaching the survey."""

    __tablename__ = "survey_participants"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    call_id: Mapped[str] = mapped_column(
        String(CALL_ID_MAX_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    destination_number: Mapped[str | None] = mapped_column(
        String(DESTINATION_MAX_LENGTH),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    answers: Mapped[list["SurveyAnswer"]] = relationship(
        "SurveyAnswer",
        back_populates="participant",
        order_by="SurveyAnswer.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_domain(self) -> Participant:
        return Participant(
            call_id=self.call_id,
            destination_number=self.destination_number,
            answers=tuple(a.to_domain() for a in self.answers),
            created_at=self.created_at,
        )


class SurveyAnswer(Base):
    """A recorded answer; ``position`` is the index of the question it answers."""

    __tablename__ = "survey_answers"
    __table_args__ = (
        UniqueConstraint("participant_id", "position", name="uq_survey_answers_position"),
        UniqueConstraint(
            "participant_id",
            "leg_id",
            "recording_ref",
            name="uq_survey_answers_recording",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    participant_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("survey_participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    leg_id: Mapped[str] = mapped_column(String(RECORDING_REF_MAX_LENGTH), nullable=False)
    recording_ref: Mapped[str] = mapped_column(String(RECORDING_REF_MAX_LENGTH), nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    participant: Mapped[SurveyParticipant] = relationship(
        "SurveyParticipant",
        back_populates="answers",
    )

    def to_domain(self) -> Answer:
        return Answer(leg_id=self.leg_id, recording_ref=self.recording_ref)
