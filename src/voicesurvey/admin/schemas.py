"""
Pydantic schemas for the admin listing.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from voicesurvey.participants.domain import Participant


class AnswerSchema(BaseModel):
    """A stored answer and the question it belongs to."""

    position: int = Field(..., ge=0, description="Index of the answered question")
    leg_id: str
    recording_ref: str


class ParticipantSchema(BaseModel):
    """Participant with answers in question order."""

    call_id: str
    destination_number: str | None = None
    created_at: datetime
    answered_count: int
    completed: bool
    answers: list[AnswerSchema] = Field(default_factory=list)

    @classmethod
    def from_participant(cls, participant: Participant, question_count: int) -> "ParticipantSchema":
        return cls(
            call_id=participant.call_id,
            destination_number=participant.destination_number,
            created_at=participant.created_at,
            answered_count=participant.answered_count,
            completed=participant.answered_count >= question_count,
            answers=[
                AnswerSchema(position=i, leg_id=a.leg_id, recording_ref=a.recording_ref)
                for i, a in enumerate(participant.answers)
            ],
        )


class ParticipantListResponse(BaseModel):
    """Questions plus every participant, for the admin overview."""

    questions: list[str]
    participants: list[ParticipantSchema]
