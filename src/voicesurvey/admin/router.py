"""
Admin listing of survey participants.
"""

from fastapi import APIRouter, Depends

from voicesurvey.admin.schemas import ParticipantListResponse, ParticipantSchema
from voicesurvey.participants.store import ParticipantStoreProtocol
from voicesurvey.survey.questions import QuestionCatalog
from voicesurvey.telephony.webhooks.router import get_participant_store, get_question_catalog

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/participants", response_model=ParticipantListResponse)
async def list_participants(
    store: ParticipantStoreProtocol = Depends(get_participant_store),
    questions: QuestionCatalog = Depends(get_question_catalog),
) -> ParticipantListResponse:
    participants = await store.list_all()
    return ParticipantListResponse(
        questions=questions.texts,
        participants=[ParticipantSchema.from_participant(p, len(questions)) for p in participants],
    )
