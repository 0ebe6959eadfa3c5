"""
Test configuration and fixtures
"""

import pytest
from datetime import datetime
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.core.database as database
from app.main import app
from app.core.database import Base
from app.models import VideoRecord
from app.services.video_suggestions import video_suggestion_resolver

SAMPLE_VIDEOS = [
    {
        "video_id": "jab00000001",
        "video_title": "How To Throw A Perfect Jab",
        "topic": "Technique",
        "subtopic": "Jab",
        "tags": ["orthodox", "speed"],
        "view_count": 9000,
        "published_time": datetime(2024, 1, 10),
    },
    {
        "video_id": "jab00000002",
        "video_title": "Double Jab Drills",
        "topic": "Technique",
        "subtopic": "Jab",
        "tags": ["southpaw"],
        "view_count": 3000,
        "published_time": datetime(2024, 3, 2),
    },
    {
        "video_id": "foot0000001",
        "video_title": "Footwork Fundamentals",
        "topic": "Technique",
        "subtopic": "Footwork",
        "tags": ["balance", "orthodox"],
        "view_count": 7000,
        "published_time": datetime(2023, 11, 5),
    },
    {
        "video_id": "dist0000001",
        "video_title": "Controlling Distance In The Ring",
        "topic": "Tactics",
        "subtopic": "Distance",
        "tags": ["Power"],
        "view_count": 5000,
        "published_time": datetime(2024, 2, 1),
    },
    {
        "video_id": "mind0000001",
        "video_title": "Beating Pre-Fight Nerves",
        "topic": "Mindset",
        "subtopic": None,
        "tags": None,
        "view_count": 12000,
        "published_time": datetime(2022, 6, 1),
    },
]


@pytest.fixture(scope="function")
def db_engine():
    """In-memory SQLite shared across connections for one test"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine, monkeypatch):
    """Point every get_db() caller at the test database"""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    monkeypatch.setattr(database, "SessionLocal", factory)
    return factory


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def seeded_videos(db_session):
    """Small catalog covering every topic"""
    for video in SAMPLE_VIDEOS:
        db_session.add(VideoRecord(url=f"https://www.youtube.com/watch?v={video['video_id']}", **video))
    db_session.commit()
    return SAMPLE_VIDEOS


@pytest.fixture(scope="function")
def client(session_factory):
    """Test client bound to the in-memory database (startup hooks are not run)"""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_suggestion_cache():
    video_suggestion_resolver.clear()
    yield
    video_suggestion_resolver.clear()
