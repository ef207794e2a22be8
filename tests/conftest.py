"""Shared fixtures: a file-backed SQLite database per test."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory
from domain.common import utc_now
from domain.lifecycle import SeasonLifecycleManager
from domain.pipeline import RecalculationOrchestrator
from models import Season
from repositories.schema import ensure_season_ranking_schema
from repositories.signals import SignalStore


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'season_ranking.db'}")
    ensure_season_ranking_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def signal_store(session_factory: sessionmaker[Session]) -> SignalStore:
    return SignalStore(session_factory)


@pytest.fixture
def orchestrator(session_factory: sessionmaker[Session]) -> RecalculationOrchestrator:
    return RecalculationOrchestrator(session_factory, chunk_size=2)


@pytest.fixture
def lifecycle(
    session_factory: sessionmaker[Session],
    orchestrator: RecalculationOrchestrator,
) -> SeasonLifecycleManager:
    return SeasonLifecycleManager(session_factory, orchestrator=orchestrator)


@pytest.fixture
def active_season(lifecycle: SeasonLifecycleManager) -> Season:
    return lifecycle.create_season(14)


@pytest.fixture
def as_of() -> datetime:
    return utc_now() + timedelta(seconds=1)
