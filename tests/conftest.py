"""
Shared fixtures for the TaskHub service tests.

Environment variables are set before anything from taskhub is imported so
settings, the bcrypt context and the retry policy pick up test values.
Every test gets a fresh in-memory database shared by all five apps.
Sibling services are faked with httpx.MockTransport, or routed into the
real user service app for cross-service tests.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["HTTP_RETRY_DELAY"] = "0"
os.environ["TRACK_TASK_EVENTS"] = "true"

from typing import Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskhub import main
from taskhub.api import analytics as analytics_api
from taskhub.api import frontend as frontend_api
from taskhub.api import health as health_api
from taskhub.api import tasks as tasks_api
from taskhub.clients import (
    AnalyticsServiceClient,
    FileServiceClient,
    RetryPolicy,
    TaskServiceClient,
    UserServiceClient,
)
from taskhub.core.dependencies import get_user_service_client
from taskhub.database import Base, get_db
from taskhub.models import User
from taskhub.models.session import create_session
from taskhub.core.security import hash_password

ALL_APPS = (main.user_app, main.task_app, main.analytics_app, main.file_app, main.frontend_app)

NO_RETRY = RetryPolicy(retries=0, delay=0)

USER = {"id": 1, "email": "ada@example.com", "name": "Ada Lovelace", "created_at": "2024-01-01T00:00:00"}
OTHER_USER = {"id": 2, "email": "grace@example.com", "name": "Grace Hopper", "created_at": "2024-01-01T00:00:00"}

TOKENS = {"token-ada": USER, "token-grace": OTHER_USER}


class RecordingHandler:
    """MockTransport handler that records every request and answers from a callable"""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def bearer(request: httpx.Request) -> Optional[str]:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    return token if scheme == "Bearer" else None


def fake_verify(request: httpx.Request) -> httpx.Response:
    """Stand-in for GET /api/v1/auth/verify backed by TOKENS"""
    user = TOKENS.get(bearer(request))
    if user is None:
        return httpx.Response(401, json={"success": False, "error": "Invalid session token"})
    return httpx.Response(200, json={"success": True, "user": user})


def auth_headers(token: str = "token-ada") -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db_session_factory():
    """One in-memory database per test, visible from every app and thread"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    for app in ALL_APPS:
        app.dependency_overrides[get_db] = override_get_db

    yield factory

    for app in ALL_APPS:
        app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def verify_handler():
    return RecordingHandler(fake_verify)


@pytest.fixture
def analytics_handler():
    """Analytics service that accepts every event"""
    return RecordingHandler(lambda request: httpx.Response(201, json={"status": "success", "data": {"event_id": 1}}))


@pytest.fixture
def fake_user_service(verify_handler):
    def factory():
        return UserServiceClient(
            base_url="http://users.test",
            transport=httpx.MockTransport(verify_handler),
            retry_policy=NO_RETRY,
        )
    return factory


@pytest.fixture
def user_client(db_session_factory):
    return TestClient(main.user_app)


@pytest.fixture
def task_client(db_session_factory, fake_user_service, analytics_handler):
    main.task_app.dependency_overrides[get_user_service_client] = fake_user_service
    main.task_app.dependency_overrides[tasks_api.get_analytics_client] = lambda: AnalyticsServiceClient(
        base_url="http://analytics.test",
        transport=httpx.MockTransport(analytics_handler),
        retry_policy=NO_RETRY,
    )
    return TestClient(main.task_app)


@pytest.fixture
def task_service_handler():
    """Override .respond in a test to shape what the fake task service answers"""
    return RecordingHandler(lambda request: httpx.Response(200, json={"success": True, "tasks": [], "total": 0}))


@pytest.fixture
def analytics_client(db_session_factory, fake_user_service, task_service_handler):
    main.analytics_app.dependency_overrides[get_user_service_client] = fake_user_service
    main.analytics_app.dependency_overrides[analytics_api.get_task_client] = lambda: TaskServiceClient(
        base_url="http://tasks.test",
        transport=httpx.MockTransport(task_service_handler),
        retry_policy=NO_RETRY,
    )
    return TestClient(main.analytics_app)


@pytest.fixture
def file_client(db_session_factory):
    return TestClient(main.file_app)


@pytest.fixture
def health_transport():
    """Every sibling answers /up with 200 unless a test replaces .respond"""
    return RecordingHandler(lambda request: httpx.Response(200, json={"status": "healthy"}))


@pytest.fixture
def with_health_transport(db_session_factory, health_transport):
    transport = httpx.MockTransport(health_transport)
    for app in ALL_APPS:
        app.dependency_overrides[health_api.get_health_transport] = lambda: transport
    return health_transport


@pytest.fixture
def sibling_handlers():
    """Per-sibling handlers for the frontend; tests replace .respond as needed"""
    return {
        "users": RecordingHandler(fake_verify),
        "tasks": RecordingHandler(lambda request: httpx.Response(200, json={"success": True, "tasks": [], "total": 0})),
        "analytics": RecordingHandler(lambda request: httpx.Response(200, json={"status": "success", "data": {}})),
        "files": RecordingHandler(lambda request: httpx.Response(200, json={"data": {}})),
    }


@pytest.fixture
def frontend_client(db_session_factory, sibling_handlers):
    def client_for(cls, name, host):
        return lambda: cls(
            base_url=f"http://{host}.test",
            transport=httpx.MockTransport(sibling_handlers[name]),
            retry_policy=NO_RETRY,
        )

    app = main.frontend_app
    app.dependency_overrides[get_user_service_client] = client_for(UserServiceClient, "users", "users")
    app.dependency_overrides[frontend_api.get_task_client] = client_for(TaskServiceClient, "tasks", "tasks")
    app.dependency_overrides[frontend_api.get_analytics_client] = client_for(AnalyticsServiceClient, "analytics", "analytics")
    app.dependency_overrides[frontend_api.get_file_client] = client_for(FileServiceClient, "files", "files")
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """Create a user with a live session directly in the database"""

    def factory(email: str = "ada@example.com", name: str = "Ada Lovelace", password: str = "password123"):
        user = User(email=email, name=name, password_hash=hash_password(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        user_session = create_session(db, user)
        return user, user_session

    return factory
