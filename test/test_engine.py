"""
Tests for the call-flow decision engine.
"""

import json

import pytest

from voicesurvey.flow.engine import (
    COMPLETION_MESSAGE,
    WELCOME_MESSAGE,
    CallFlowEngine,
    FlowOptions,
)
from voicesurvey.flow.steps import RecordStep, SayStep
from voicesurvey.participants.domain import Answer
from voicesurvey.participants.memory import InMemoryParticipantStore
from voicesurvey.shared.exceptions import MalformedCallbackPayload
from voicesurvey.survey.questions import QuestionCatalog


async def _answer_all(engine: CallFlowEngine, call_id: str, count: int, url: str) -> None:
    await engine.compute_next_step(call_id, "555", None, url)
    for i in range(count):
        await engine.compute_next_step(call_id, "555", Answer(f"L{i}", f"R{i}"), url)


class TestFirstCallback:
    @pytest.mark.asyncio
    async def test_new_call_gets_welcome_question_and_record(
        self,
        engine: CallFlowEngine,
        on_finish_url: str,
    ) -> None:
        document = await engine.compute_next_step("abc", "555", None, on_finish_url)

        assert [type(s) for s in document.steps] == [SayStep, SayStep, RecordStep]
        assert document.steps[0].options.payload == WELCOME_MESSAGE.format(count=2)
        assert "2 questions" in document.steps[0].options.payload
        assert document.steps[1].options.payload == "Q1"
        assert document.steps[2].options.on_finish == on_finish_url

    @pytest.mark.asyncio
    async def test_new_call_creates_participant_without_answers(
        self,
        engine: CallFlowEngine,
        memory_store: InMemoryParticipantStore,
        on_finish_url: str,
    ) -> None:
        await engine.compute_next_step("abc", "555", None, on_finish_url)

        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.destination_number == "555"
        assert participant.answers == ()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("texts", [["Only"], ["A", "B", "C", "D", "E"]])
    async def test_first_document_for_any_catalog(self, texts: list[str], on_finish_url: str) -> None:
        engine = CallFlowEngine(InMemoryParticipantStore(), QuestionCatalog.from_texts(texts))

        document = await engine.compute_next_step("new-call", "555", None, on_finish_url)

        assert document.spoken_texts == [WELCOME_MESSAGE.format(count=len(texts)), texts[0]]
        assert document.record_count == 1

    @pytest.mark.asyncio
    async def test_answer_for_unknown_call_starts_survey(
        self,
        engine: CallFlowEngine,
        memory_store: InMemoryParticipantStore,
        on_finish_url: str,
    ) -> None:
        document = await engine.compute_next_step("late", "555", Answer("L1", "R1"), on_finish_url)

        participant = await memory_store.find_by_call_id("late")
        assert participant is not None
        assert participant.answers == ()
        assert document.spoken_texts[1] == "Q1"


class TestMiddleOfSurvey:
    @pytest.mark.asyncio
    async def test_kth_question_independent_of_answer_content(self, on_finish_url: str) -> None:
        questions = QuestionCatalog.from_texts(["A", "B", "C", "D"])
        for k in (1, 2, 3):
            store = InMemoryParticipantStore()
            engine = CallFlowEngine(store, questions)
            await store.create("abc", "555")
            for i in range(k):
                await store.append_answer("abc", Answer(f"leg-{k}-{i}", f"x{i * 7}"), limit=4)

            document = await engine.compute_next_step("abc", "555", None, on_finish_url)

            assert document.spoken_texts == [questions.text_at(k)]
            assert isinstance(document.steps[-1], RecordStep)

    @pytest.mark.asyncio
    async def test_existing_participant_without_answer_keeps_position(
        self,
        engine: CallFlowEngine,
        memory_store: InMemoryParticipantStore,
        on_finish_url: str,
    ) -> None:
        await engine.compute_next_step("abc", "555", None, on_finish_url)
        await engine.compute_next_step("abc", "555", Answer("L1", "R1"), on_finish_url)

        document = await engine.compute_next_step("abc", "555", None, on_finish_url)

        assert document.spoken_texts == ["Q2"]
        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.answered_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_delivery_repeats_same_question(
        self,
        engine: CallFlowEngine,
        memory_store: InMemoryParticipantStore,
        on_finish_url: str,
    ) -> None:
        await engine.compute_next_step("abc", "555", None, on_finish_url)
        first = await engine.compute_next_step("abc", "555", Answer("L1", "R1"), on_finish_url)
        again = await engine.compute_next_step("abc", "555", Answer("L1", "R1"), on_finish_url)

        assert first == again
        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.answers == (Answer("L1", "R1"),)


class TestCompletion:
    @pytest.mark.asyncio
    async def test_all_answered_returns_single_completion_say(
        self,
        engine: CallFlowEngine,
        on_finish_url: str,
    ) -> None:
        await engine.compute_next_step("abc", "555", None, on_finish_url)
        await engine.compute_next_step("abc", "555", Answer("L1", "R1"), on_finish_url)
        document = await engine.compute_next_step("abc", "555", Answer("L2", "R2"), on_finish_url)

        assert len(document.steps) == 1
        assert isinstance(document.steps[0], SayStep)
        assert document.steps[0].options.payload == COMPLETION_MESSAGE
        assert document.record_count == 0

    @pytest.mark.asyncio
    async def test_completion_is_idempotent(
        self,
        engine: CallFlowEngine,
        on_finish_url: str,
    ) -> None:
        await _answer_all(engine, "abc", 2, on_finish_url)

        first = await engine.compute_next_step("abc", "555", None, on_finish_url)
        second = await engine.compute_next_step("abc", "555", None, on_finish_url)
        third = await engine.compute_next_step("abc", "555", Answer("L2", "R2"), on_finish_url)

        assert first == second == third
        assert first.spoken_texts == [COMPLETION_MESSAGE]

    @pytest.mark.asyncio
    async def test_extra_answers_never_exceed_catalog(
        self,
        engine: CallFlowEngine,
        memory_store: InMemoryParticipantStore,
        on_finish_url: str,
    ) -> None:
        await _answer_all(engine, "abc", 5, on_finish_url)

        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.answered_count == 2
        assert participant.answers == (Answer("L0", "R0"), Answer("L1", "R1"))

    @pytest.mark.asyncio
    async def test_record_steps_never_exceed_question_count(
        self,
        engine: CallFlowEngine,
        on_finish_url: str,
    ) -> None:
        records = 0
        document = await engine.compute_next_step("abc", "555", None, on_finish_url)
        records += document.record_count
        for i in range(4):
            document = await engine.compute_next_step("abc", "555", Answer(f"L{i}", f"R{i}"), on_finish_url)
            records += document.record_count

        assert records == 2


class TestScenario:
    @pytest.mark.asyncio
    async def test_two_question_survey(
        self,
        engine: CallFlowEngine,
        memory_store: InMemoryParticipantStore,
        on_finish_url: str,
    ) -> None:
        doc1 = await engine.handle_callback("abc", "555", None, on_finish_url)
        assert doc1.spoken_texts[1:] == ["Q1"]
        assert "2 questions" in doc1.spoken_texts[0]
        assert doc1.record_count == 1

        doc2 = await engine.handle_callback(
            "abc", "555", json.dumps({"legId": "L1", "id": "R1"}), on_finish_url
        )
        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.answers == (Answer("L1", "R1"),)
        assert doc2.spoken_texts == ["Q2"]
        assert doc2.record_count == 1

        doc3 = await engine.handle_callback(
            "abc", "555", json.dumps({"legId": "L2", "id": "R2"}).encode(), on_finish_url
        )
        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.answered_count == 2
        assert doc3.spoken_texts == [COMPLETION_MESSAGE]
        assert doc3.record_count == 0


class TestMalformedPayload:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b'{"legId": "L1"}', b'{"legId": 3, "id": "R"}'])
    async def test_malformed_body_leaves_answers_unchanged(
        self,
        engine: CallFlowEngine,
        memory_store: InMemoryParticipantStore,
        on_finish_url: str,
        body: bytes,
    ) -> None:
        await engine.handle_callback("abc", "555", None, on_finish_url)
        await engine.handle_callback("abc", "555", b'{"legId": "L1", "id": "R1"}', on_finish_url)

        document = await engine.handle_callback("abc", "555", body, on_finish_url)

        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.answers == (Answer("L1", "R1"),)
        assert document.spoken_texts == ["Q2"]
        assert document.record_count == 1

    @pytest.mark.asyncio
    async def test_reject_policy_raises(
        self,
        memory_store: InMemoryParticipantStore,
        questions: QuestionCatalog,
        on_finish_url: str,
    ) -> None:
        engine = CallFlowEngine(
            memory_store,
            questions,
            FlowOptions(malformed_payload_policy="reject"),
        )
        await engine.handle_callback("abc", "555", None, on_finish_url)

        with pytest.raises(MalformedCallbackPayload):
            await engine.handle_callback("abc", "555", b"{broken", on_finish_url)

        participant = await memory_store.find_by_call_id("abc")
        assert participant is not None
        assert participant.answers == ()

    @pytest.mark.asyncio
    async def test_empty_body_is_not_an_answer(
        self,
        engine: CallFlowEngine,
        on_finish_url: str,
    ) -> None:
        await engine.handle_callback("abc", "555", b"", on_finish_url)
        document = await engine.handle_callback("abc", "555", b"   ", on_finish_url)

        assert document.spoken_texts[-1] == "Q1"


class TestDocumentOptions:
    def test_options_are_passed_through(self, questions: QuestionCatalog, on_finish_url: str) -> None:
        engine = CallFlowEngine(
            InMemoryParticipantStore(),
            questions,
            FlowOptions(
                title="Custom",
                voice="female",
                language="nl-NL",
                finish_on_key="#",
                record_timeout_seconds=25,
            ),
        )

        payload = engine.build_document(1, on_finish_url).to_payload()

        assert payload == {
            "title": "Custom",
            "steps": [
                {"action": "say", "options": {"payload": "Q2", "voice": "female", "language": "nl-NL"}},
                {
                    "action": "record",
                    "options": {"finishOnKey": "#", "timeout": 25, "onFinish": on_finish_url},
                },
            ],
        }
