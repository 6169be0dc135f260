"""
Call-flow decision engine.

Per call the survey moves NotStarted -> AwaitingAnswer(0) -> ... ->
AwaitingAnswer(N-1) -> Completed. The position of the next question is the
number of answers the store holds, so the engine never keeps its own
counter and never rewrites the answer list itself: the append is delegated
to the store, which performs it atomically and reports the authoritative
count back.
"""

from __future__ import annotations

from dataclasses import dataclass

from voicesurvey.config import MalformedPayloadPolicy
from voicesurvey.flow.payloads import parse_recording_callback
from voicesurvey.flow.steps import FlowDocument, FlowStep, record, say
from voicesurvey.participants.domain import Answer
from voicesurvey.participants.store import ParticipantStoreProtocol
from voicesurvey.shared.exceptions import MalformedCallbackPayload
from voicesurvey.shared.logging import get_logger
from voicesurvey.survey.questions import QuestionCatalog

logger = get_logger(__name__)

WELCOME_MESSAGE = (
    "Welcome to our survey! You will be asked {count} questions. "
    "The answers will be recorded. Speak your response for each and press any "
    "key on your phone to move on to the next question. Here is the first question:"
)
COMPLETION_MESSAGE = "You have completed our survey. Thank you for participating!"


@dataclass(frozen=True)
class FlowOptions:
    """Presentation options copied into every instruction document."""

    title: str = "Survey Call Step"
    voice: str = "male"
    language: str = "en-US"
    finish_on_key: str = "any"
    record_timeout_seconds: int = 10
    malformed_payload_policy: MalformedPayloadPolicy = "continue"


class CallFlowEngine:
    """Decides the next instruction document for a survey call."""

    def __init__(
        self,
        store: ParticipantStoreProtocol,
        questions: QuestionCatalog,
        options: FlowOptions | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Participant store; must append atomically per call id.
            questions: Question catalog, read-only for the process lifetime.
            options: Voice and record-step options.
        """
        self._store = store
        self._questions = questions
        self._options = options or FlowOptions()

    async def handle_callback(
        self,
        call_id: str,
        destination_number: str | None,
        body: bytes | str | None,
        on_finish_url: str,
    ) -> FlowDocument:
        """Parse a raw callback body and compute the next step.

        With the ``continue`` policy a malformed body is logged and dropped,
        and the next step is computed from the stored state. With ``reject``
        the MalformedCallbackPayload propagates to the caller.
        """
        try:
            answer = parse_recording_callback(body)
        except MalformedCallbackPayload as exc:
            logger.warning(
                "Malformed callback payload; answer not stored",
                extra={
                    "call_id": call_id,
                    "reason": exc.message,
                    "details": exc.details,
                    "policy": self._options.malformed_payload_policy,
                },
            )
            if self._options.malformed_payload_policy == "reject":
                raise
            answer = None

        return await self.compute_next_step(call_id, destination_number, answer, on_finish_url)

    async def compute_next_step(
        self,
        call_id: str,
        destination_number: str | None,
        incoming_answer: Answer | None,
        on_finish_url: str,
    ) -> FlowDocument:
        """Record ``incoming_answer`` (if any) and return the next document.

        Args:
            call_id: Platform call identifier.
            destination_number: Called number, stored on first contact only.
            incoming_answer: The recording that just finished, if any.
            on_finish_url: URL the ``record`` step reports back to.

        Returns:
            The instruction document for the current position in the survey.
        """
        participant = await self._store.find_by_call_id(call_id)

        if participant is None:
            if incoming_answer is not None:
                logger.warning(
                    "Answer received for unknown call; starting survey",
                    extra={"call_id": call_id, "leg_id": incoming_answer.leg_id},
                )
            await self._store.create(call_id, destination_number)
            answered_count = 0
        elif incoming_answer is not None:
            result = await self._store.append_answer(
                call_id,
                incoming_answer,
                limit=len(self._questions),
            )
            answered_count = result.answered_count
        else:
            answered_count = participant.answered_count

        document = self.build_document(answered_count, on_finish_url)

        logger.info(
            "Call step computed",
            extra={
                "call_id": call_id,
                "answered_count": answered_count,
                "question_count": len(self._questions),
                "completed": answered_count >= len(self._questions),
            },
        )
        return document

    def build_document(self, answered_count: int, on_finish_url: str) -> FlowDocument:
        """Pure mapping from an answer count to the instruction document."""
        opts = self._options
        total = len(self._questions)
        steps: list[FlowStep] = []

        if answered_count >= total:
            steps.append(say(COMPLETION_MESSAGE, voice=opts.voice, language=opts.language))
            return FlowDocument(title=opts.title, steps=steps)

        if answered_count == 0:
            steps.append(
                say(WELCOME_MESSAGE.format(count=total), voice=opts.voice, language=opts.language)
            )

        steps.append(
            say(self._questions.text_at(answered_count), voice=opts.voice, language=opts.language)
        )
        steps.append(
            record(
                on_finish_url,
                finish_on_key=opts.finish_on_key,
                timeout=opts.record_timeout_seconds,
            )
        )
        return FlowDocument(title=opts.title, steps=steps)
