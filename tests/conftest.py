"""Shared fixtures: an in-memory database, storage, factories and a client."""

import itertools
import os
from datetime import datetime, timedelta

# Must be set before agendas.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATION_BACKEND", "database")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from agendas.core.security import create_access_token
from agendas.db import get_session
from agendas.main import app
from agendas.models import (
    Agenda,
    AgendaMember,
    AgendaType,
    Event,
    EventStatus,
    Role,
    User,
)
from agendas.services.storage import SessionStorage

BASE_TIME = datetime(2030, 3, 4, 9, 0)


class RecordingNotifier:
    """Notifier that keeps every call in memory."""

    def __init__(self):
        self.sent = []

    def notify(self, recipient_ids, type, payload):
        self.sent.append((list(recipient_ids), type, payload))

    def of_type(self, type):
        return [(recipients, payload) for recipients, sent_type, payload in self.sent if sent_type == type]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def storage(session) -> SessionStorage:
    return SessionStorage(session)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_user(storage):
    counter = itertools.count()

    def factory(name=None) -> User:
        name = name or f"user{next(counter)}"
        user = User(
            email=f"{name.lower()}@example.com",
            full_name=name,
            hashed_password="not-a-real-hash",
        )
        storage.add_user(user)
        storage.commit()
        return user

    return factory


@pytest.fixture
def make_agenda(storage):
    def factory(owner, type=AgendaType.PERSONAL, members=(), name="Agenda") -> Agenda:
        agenda = Agenda(name=name, type=AgendaType(type).value, owner_id=owner.id)
        storage.add_agenda(agenda)
        for user, role in members:
            storage.add_membership(
                AgendaMember(agenda_id=agenda.id, user_id=user.id, role=Role(role).value)
            )
        storage.commit()
        return agenda

    return factory


@pytest.fixture
def make_event(storage):
    def factory(
        agenda,
        creator,
        *,
        title="Event",
        start=BASE_TIME,
        duration=timedelta(hours=1),
        status=EventStatus.CONFIRMED,
        is_private=False,
        visible_to_students=False,
        shared_with=(),
    ) -> Event:
        event = Event(
            agenda_id=agenda.id,
            creator_id=creator.id,
            title=title,
            starts_at=start,
            ends_at=start + duration,
            status=EventStatus(status).value,
            is_private=is_private,
            visible_to_students=visible_to_students,
        )
        event.set_shared_with(user.id for user in shared_with)
        storage.add_event(event)
        storage.commit()
        return event

    return factory


@pytest.fixture
def client(session):
    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def factory(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return factory
