"""pytest configuration and fixtures."""

import itertools
from datetime import datetime, timedelta

import pytest

from swipematch.config import Settings
from swipematch.models.user import UserCreate
from swipematch.services import build_service
from swipematch.storage.memory import MemoryStorage
from swipematch.storage.sql import SqlStorage, create_database_engine

START = datetime(2026, 3, 1, 9, 0, 0)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DAILY_CREDIT_ALLOWANCE=10,
        CREDIT_RESET_HOURS=24,
        SCORE_INITIAL=100.0,
        SCORE_LIKE_INCREMENT=2.0,
        SCORE_DISLIKE_DECREMENT=1.0,
        SCORE_FLOOR=10.0,
        STORAGE_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def memory_storage():
    return MemoryStorage(default_timeout=5.0)


@pytest.fixture
def sql_storage(tmp_path):
    engine = create_database_engine(f"sqlite:///{tmp_path / 'swipematch.db'}")
    storage = SqlStorage(engine, default_timeout=5.0)
    storage.init()
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Each test using this fixture runs once per storage backend."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def service(storage, test_settings, clock):
    return build_service(test_settings, storage=storage, clock=clock)


@pytest.fixture
def memory_service(memory_storage, test_settings, clock):
    return build_service(test_settings, storage=memory_storage, clock=clock)


def _user_factory(svc):
    counter = itertools.count(1)

    def make_user(username=None, **overrides):
        n = next(counter)
        fields = {
            "username": username or f"user{n}",
            "name": (username or f"User {n}").title(),
            "age": 25 + n % 10,
            "image": f"https://example.com/{n}.jpg",
        }
        fields.update(overrides)
        return svc.users.create_user(UserCreate(**fields))

    return make_user


@pytest.fixture
def make_user(service):
    return _user_factory(service)


@pytest.fixture
def make_memory_user(memory_service):
    return _user_factory(memory_service)


def set_score(storage, user_id, score):
    """Overwrite a user's score directly in storage."""
    with storage.unit_of_work() as uow:
        user = uow.get_user(user_id)
        user.score = score
        uow.save_user(user)
