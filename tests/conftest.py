import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import KNOWLEDGE_COMPLETED, Bot, Integration, Knowledge, KnowledgeVector, PlatformType


def make_engine(url: str = "sqlite://", begin: str = "BEGIN", **kwargs):
    """SQLite engine with working SAVEPOINTs (pysqlite transaction recipe)."""
    connect_args = {"check_same_thread": False, **kwargs.pop("connect_args", {})}
    engine = create_engine(url, connect_args=connect_args, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql(begin)

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def engine():
    engine = make_engine(poolclass=StaticPool)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture
def team_id():
    return uuid.uuid4()


@pytest.fixture
def make_integration(db, team_id):
    def factory(platform=PlatformType.WHATSAPP_BUSINESS, **fields):
        integration = Integration(
            team_id=fields.pop("team_id", team_id),
            name=fields.pop("name", f"{platform.value} channel"),
            type=platform.value,
            is_connected=fields.pop("is_connected", True),
            access_token=fields.pop("access_token", "page-token"),
            **fields,
        )
        db.add(integration)
        db.flush()
        return integration

    return factory


@pytest.fixture
def make_bot(db, team_id):
    def factory(integration=None, prompt="You are the front desk of a small bakery.", **fields):
        bot = Bot(
            team_id=fields.pop("team_id", team_id),
            name=fields.pop("name", "Front desk"),
            prompt=prompt,
            integration_id=integration.id if integration else None,
            **fields,
        )
        db.add(bot)
        db.flush()
        if integration is not None:
            db.refresh(integration)
        return bot

    return factory


@pytest.fixture
def make_knowledge(db):
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def factory(bot, chunks, status=KNOWLEDGE_COMPLETED, name="FAQ"):
        counter["n"] += 1
        knowledge = Knowledge(
            bot_id=bot.id,
            name=name,
            status=status,
            created_at=base_time + timedelta(minutes=counter["n"]),
        )
        db.add(knowledge)
        db.flush()
        for index, (text, vector) in enumerate(chunks):
            db.add(KnowledgeVector(knowledge_id=knowledge.id, chunk_index=index, text=text, vector=vector))
        db.flush()
        return knowledge

    return factory


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite whose transactions take the write lock up front."""
    engine = make_engine(
        f"sqlite:///{tmp_path / 'chatrelay.db'}",
        begin="BEGIN IMMEDIATE",
        connect_args={"timeout": 30},
    )
    yield engine
    engine.dispose()
