"""
FastAPI router for the survey call-flow webhook.

The telephony platform calls ``/callStep`` when a call connects and again
every time a ``record`` step finishes; each response tells it what to do
next. The router only translates HTTP to engine inputs and back.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from voicesurvey.config import Settings, get_settings
from voicesurvey.flow.engine import CallFlowEngine
from voicesurvey.participants.domain import CALL_ID_MAX_LENGTH, DESTINATION_MAX_LENGTH
from voicesurvey.participants.repository import ParticipantRepository
from voicesurvey.participants.store import ParticipantStoreProtocol
from voicesurvey.shared.database import get_db_session
from voicesurvey.shared.logging import correlation_id_var, get_logger
from voicesurvey.survey.questions import QuestionCatalog
from voicesurvey.telephony.config import TelephonyConfig, get_telephony_config

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


def get_question_catalog(request: Request) -> QuestionCatalog:
    """Catalog loaded by the application lifespan."""
    return request.app.state.questions


async def get_participant_store(
    session: AsyncSession = Depends(get_db_session),
) -> ParticipantStoreProtocol:
    return ParticipantRepository(session)


def get_call_flow_engine(
    store: ParticipantStoreProtocol = Depends(get_participant_store),
    questions: QuestionCatalog = Depends(get_question_catalog),
    settings: Settings = Depends(get_settings),
    telephony_cfg: TelephonyConfig = Depends(get_telephony_config),
) -> CallFlowEngine:
    return CallFlowEngine(store, questions, telephony_cfg.flow_options(settings))


@router.api_route("/callStep", methods=["GET", "POST"])
async def call_step(
    request: Request,
    call_id: str = Query(..., alias="callID", min_length=1, max_length=CALL_ID_MAX_LENGTH),
    destination: str | None = Query(default=None, max_length=DESTINATION_MAX_LENGTH),
    engine: CallFlowEngine = Depends(get_call_flow_engine),
    telephony_cfg: TelephonyConfig = Depends(get_telephony_config),
) -> JSONResponse:
    """Return the next call-flow instruction document for ``callID``."""
    token = correlation_id_var.set(call_id)
    try:
        body = await request.body() if request.method == "POST" else None
        on_finish_url = telephony_cfg.get_callback_url(call_id, base_url=str(request.base_url))

        logger.info(
            "Call step callback received",
            extra={
                "call_id": call_id,
                "destination": destination,
                "method": request.method,
                "has_body": bool(body),
            },
        )

        document = await engine.handle_callback(call_id, destination, body, on_finish_url)
    finally:
        correlation_id_var.reset(token)

    return JSONResponse(content=document.to_payload())
