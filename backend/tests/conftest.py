"""
Pytest configuration and fixtures for testing.
"""

import os

# Settings are read at import time; point them at SQLite before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ.setdefault("SERPER_API_KEY", "test-serper-key")

import uuid
from datetime import timedelta
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from appwhistler.db.database import Base, get_db, utcnow
from appwhistler.main import app
from appwhistler.models.cycle_log import ReverificationCycleLog
from appwhistler.models.fact_check import FactCheck, FactCheckUpdate, FactCheckVote
from appwhistler.models.notification import Notification


@pytest.fixture(scope="session")
def test_engine() -> Engine:
    """In-memory SQLite engine shared by every connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def session_factory(test_engine: Engine) -> Generator[sessionmaker, None, None]:
    """Session factory bound to the test engine; tables are emptied after each test."""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    yield factory

    with factory() as cleanup:
        for model in (Notification, FactCheckUpdate, FactCheckVote, FactCheck, ReverificationCycleLog):
            cleanup.query(model).delete()
        cleanup.commit()


@pytest.fixture(scope="function")
def test_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(test_db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database dependency override."""
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with patch("appwhistler.main.init_db"):
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_anthropic_client() -> Mock:
    """Mock Anthropic client for testing."""
    mock_client = Mock()
    mock_response = Mock()
    mock_response.content = [Mock()]
    mock_response.content[0].text = "Test response from Claude"
    mock_response.usage.input_tokens = 100
    mock_response.usage.output_tokens = 50
    mock_client.messages.create.return_value = mock_response
    return mock_client


@pytest.fixture
def make_fact_check(test_db: Session) -> Callable[..., FactCheck]:
    """Factory persisting fact-checks; defaults describe a stale, reviewed claim."""
    def _make(
        claim: str = "The Eiffel Tower was completed in 1889 for the World's Fair.",
        verdict: str = "TRUE",
        confidence_score: float = 0.9,
        category: str = "history",
        age_days: int = 120,
        last_verified_days_ago: Optional[int] = None,
        verified_by: Optional[uuid.UUID] = None,
        reviewed: bool = True,
        submitted_by: Optional[uuid.UUID] = None,
        sources: Optional[List[Dict[str, str]]] = None,
        explanation: str = "Confirmed by historical records.",
    ) -> FactCheck:
        now = utcnow()
        fact_check = FactCheck(
            claim=claim,
            verdict=verdict,
            confidence_score=confidence_score,
            category=category,
            sources=sources if sources is not None else [{"label": "Archive", "url": "https://example.com/archive"}],
            explanation=explanation,
            created_at=now - timedelta(days=age_days),
            updated_at=now - timedelta(days=age_days),
            last_verified_at=(now - timedelta(days=last_verified_days_ago)
                              if last_verified_days_ago is not None else None),
            submitted_by=submitted_by,
            verified_by=verified_by or (uuid.uuid4() if reviewed else None),
            automated_update_count=0,
        )
        test_db.add(fact_check)
        test_db.commit()
        test_db.refresh(fact_check)
        return fact_check

    return _make


@pytest.fixture
def add_vote(test_db: Session) -> Callable[..., FactCheckVote]:
    """Factory persisting a vote on a fact-check."""
    def _add(fact_check: FactCheck, user_id: Optional[uuid.UUID] = None, vote: str = "agree") -> FactCheckVote:
        fact_check_vote = FactCheckVote(fact_check_id=fact_check.id, user_id=user_id or uuid.uuid4(), vote=vote)
        test_db.add(fact_check_vote)
        test_db.commit()
        return fact_check_vote

    return _add


class ScriptedProvider:
    """Verification provider returning canned verdicts keyed by claim text."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, default: Optional[Any] = None) -> None:
        self.responses = responses or {}
        self.default = default
        self.calls: List[tuple] = []

    def verify(self, claim_text: str, category: str) -> Any:
        self.calls.append((claim_text, category))
        response = self.responses.get(claim_text, self.default)
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise RuntimeError(f"No scripted response for claim: {claim_text}")
        return response


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    """Provider with no scripted responses; tests fill ``responses``."""
    return ScriptedProvider()
