"""Shared fixtures: in-memory services, tokens, test clients."""

from collections.abc import Callable, Iterator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from src.auth.permissions import UserRole
from src.auth.security import create_access_token
from src.core.locks import KeyedLock
from src.courses.models import CourseShape
from src.leaderboard.service import LeaderboardService
from src.progress.service import ProgressService
from tests.fakes import InMemoryCatalog, InMemoryProgressStore, build_shape


@pytest.fixture
def course_id() -> UUID:
    return uuid4()


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def shape(course_id: UUID) -> CourseShape:
    """Two sections: three chapters and one chapter."""
    return build_shape(course_id, [3, 1])


@pytest.fixture
def catalog(shape: CourseShape) -> InMemoryCatalog:
    return InMemoryCatalog({shape.course_id: shape})


@pytest.fixture
def store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def enrolled(store, user_id, course_id) -> None:
    """Enroll ``user_id`` in ``course_id`` so progress can be written."""
    store.seed_enrollment(user_id, course_id)


@pytest.fixture
def progress_service(store, catalog) -> ProgressService:
    return ProgressService(store=store, catalog=catalog, locks=KeyedLock())


@pytest.fixture
def leaderboard_service(store, catalog) -> LeaderboardService:
    return LeaderboardService(store=store, catalog=catalog, fetch_concurrency=4)


# ==============================================================================
# HTTP fixtures
# ==============================================================================


@pytest.fixture
def make_token() -> Callable[[UUID, UserRole], str]:
    """Build a bearer token for a user id and role."""

    def _make(user_id: UUID, role: UserRole = UserRole.STUDENT) -> str:
        return create_access_token(
            {"sub": str(user_id), "email": f"{role.value}@test.com", "role": role.value}
        )

    return _make


@pytest.fixture
def client() -> TestClient:
    """Test client without lifespan (no database or Redis)."""
    from src.main import app

    return TestClient(app)


@pytest.fixture
def wired_client(progress_service, leaderboard_service) -> Iterator[TestClient]:
    """Test client whose progress services run on the in-memory fakes."""
    from src.main import app

    app.state.progress_service = progress_service
    app.state.leaderboard_service = leaderboard_service
    app.state.progress_locks = progress_service.locks
    try:
        yield TestClient(app)
    finally:
        del app.state.progress_service
        del app.state.leaderboard_service
        del app.state.progress_locks
