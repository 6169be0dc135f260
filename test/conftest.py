"""
Pytest configuration and fixtures.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from voicesurvey.config import Settings, get_settings
from voicesurvey.flow.engine import CallFlowEngine, FlowOptions
from voicesurvey.main import create_app
from voicesurvey.participants import models as participant_models  # noqa: F401
from voicesurvey.participants.memory import InMemoryParticipantStore
from voicesurvey.shared.database import Base
from voicesurvey.survey.questions import QuestionCatalog
from voicesurvey.telephony.config import TelephonyConfig, get_telephony_config
from voicesurvey.telephony.webhooks.router import get_participant_store

CALLBACK_BASE_URL = "https://survey.example.com"


@pytest.fixture
def question_texts() -> list[str]:
    return ["Q1", "Q2"]


@pytest.fixture
def questions(question_texts: list[str]) -> QuestionCatalog:
    return QuestionCatalog.from_texts(question_texts)


@pytest.fixture
def on_finish_url() -> str:
    return f"{CALLBACK_BASE_URL}/callStep?callID=abc"


@pytest.fixture
def memory_store() -> InMemoryParticipantStore:
    return InMemoryParticipantStore()


@pytest.fixture
def flow_options() -> FlowOptions:
    return FlowOptions()


@pytest.fixture
def engine(
    memory_store: InMemoryParticipantStore,
    questions: QuestionCatalog,
    flow_options: FlowOptions,
) -> CallFlowEngine:
    return CallFlowEngine(memory_store, questions, flow_options)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        app_env="dev",
        debug=True,
        database_url="sqlite+aiosqlite:///:memory:",
        database_auto_create=False,
        malformed_payload_policy="continue",
    )


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    return TelephonyConfig(
        webhook_base_url=CALLBACK_BASE_URL,
        recordings_base_url="https://voice.example.com",
        access_key="test-access-key",
    )


@pytest.fixture
def app(
    questions: QuestionCatalog,
    memory_store: InMemoryParticipantStore,
    test_settings: Settings,
    telephony_config: TelephonyConfig,
) -> Generator[FastAPI, None, None]:
    """Application wired to the in-memory store; the lifespan is not run."""
    application = create_app(questions=questions)

    async def _override_store() -> InMemoryParticipantStore:
        return memory_store

    application.dependency_overrides[get_participant_store] = _override_store
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_telephony_config] = lambda: telephony_config
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine backed by a temporary SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'survey.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
