import sqlite3
import time
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from swipematch.config import Settings
from swipematch.models.user import UserCreate
from swipematch.services import build_service
from swipematch.storage import MemoryStorage, SqlStorage, create_storage
from swipematch.storage.sql import SqlUnitOfWork, _redact_url, create_database_engine
from swipematch.utils.errors import ConflictError, DatabaseError, StorageUnavailableError
from tests.conftest import START


def _user_create(username):
    return UserCreate(username=username, name=username.title(), age=29, image=f"https://example.com/{username}.jpg")


def test_create_engine_rewrites_postgres_scheme():
    with patch("swipematch.storage.sql.create_engine") as mock_create:
        create_database_engine("postgres://user:secret@db:5432/app", pool_timeout=7)

    url = mock_create.call_args.args[0]
    kwargs = mock_create.call_args.kwargs
    assert url == "postgresql://user:secret@db:5432/app"
    assert kwargs["pool_timeout"] == 7
    assert kwargs["pool_pre_ping"] is True


def test_create_engine_sqlite_allows_threads():
    with patch("swipematch.storage.sql.create_engine") as mock_create:
        create_database_engine("sqlite:///./test.db", pool_timeout=3)

    assert mock_create.call_args.kwargs["connect_args"] == {"check_same_thread": False, "timeout": 3}


def test_create_engine_requires_url():
    with pytest.raises(DatabaseError):
        create_database_engine("")


def test_create_engine_failure_is_wrapped():
    with patch("swipematch.storage.sql.create_engine", side_effect=ValueError("bad url")):
        with pytest.raises(DatabaseError) as exc_info:
            create_database_engine("postgresql://user:secret@db/app")

    assert "secret" not in exc_info.value.details["url"]


def test_redact_url():
    assert _redact_url("postgresql://user:secret@db:5432/app") == "postgresql://user:***@db:5432/app"
    assert _redact_url("sqlite:///./local.db") == "sqlite:///./local.db"


def test_operational_error_is_storage_unavailable(sql_storage):
    with pytest.raises(StorageUnavailableError) as exc_info:
        with sql_storage.unit_of_work():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    assert exc_info.value.retryable is True


def test_other_sqlalchemy_errors_are_database_errors(sql_storage):
    with pytest.raises(DatabaseError):
        with sql_storage.unit_of_work():
            raise SQLAlchemyError("broken")


def test_init_failure_is_wrapped():
    engine = MagicMock()
    storage = SqlStorage(engine)

    with patch("swipematch.storage.sql.Base.metadata.create_all", side_effect=SQLAlchemyError("no db")):
        with pytest.raises(DatabaseError):
            storage.init()


def test_create_storage_selects_backend(tmp_path):
    memory = create_storage(Settings(_env_file=None, STORAGE_BACKEND="memory"))
    sql = create_storage(
        Settings(_env_file=None, STORAGE_BACKEND="sql", DATABASE_URL=f"sqlite:///{tmp_path / 'app.db'}")
    )

    try:
        assert isinstance(memory, MemoryStorage)
        assert isinstance(sql, SqlStorage)
        assert sql.default_timeout == 5.0
    finally:
        sql.close()


@pytest.mark.parametrize(
    "dialect, timeout, statements",
    [
        ("postgresql", 1.5, ["SET LOCAL lock_timeout = 1500", "SET LOCAL statement_timeout = 1500"]),
        ("sqlite", 1.5, ["PRAGMA busy_timeout = 1500"]),
        ("sqlite", 0, ["PRAGMA busy_timeout = 1"]),
    ],
)
def test_timeout_is_applied_per_unit_of_work(dialect, timeout, statements):
    engine = MagicMock()
    engine.dialect.name = dialect
    storage = SqlStorage(engine, default_timeout=5.0)
    session = MagicMock()

    with patch.object(storage, "_session_factory", return_value=session):
        with storage.unit_of_work(timeout=timeout):
            pass

    assert [str(c.args[0]) for c in session.execute.call_args_list] == statements
    session.commit.assert_called_once()


def test_locked_sqlite_database_honours_call_timeout(sql_storage, test_settings, clock, tmp_path):
    service = build_service(test_settings, storage=sql_storage, clock=clock)
    a = service.users.create_user(_user_create("sol"))
    b = service.users.create_user(_user_create("tess"))

    blocker = sqlite3.connect(tmp_path / "swipematch.db", isolation_level=None)
    blocker.execute("BEGIN EXCLUSIVE")
    try:
        started = time.monotonic()
        with pytest.raises(StorageUnavailableError) as exc_info:
            service.submit_swipe(a.id, b.id, True, timeout=0.2)
        elapsed = time.monotonic() - started
    finally:
        blocker.execute("ROLLBACK")
        blocker.close()

    assert exc_info.value.retryable is True
    assert elapsed < 3
    assert service.get_credits(a.id) == 10
    assert service.submit_swipe(a.id, b.id, True).credits_remaining == 9


def test_username_index_rejects_case_variants(sql_storage):
    with sql_storage.unit_of_work() as uow:
        uow.insert_user(_user_create("Bob"), score=100.0, credits_remaining=10, created_at=START)

    # Simulates a second process whose lookup ran before the first insert committed
    with patch.object(SqlUnitOfWork, "get_user_by_username", return_value=None):
        with pytest.raises(ConflictError):
            with sql_storage.unit_of_work() as uow:
                uow.insert_user(_user_create("bob"), score=100.0, credits_remaining=10, created_at=START)

    with sql_storage.unit_of_work() as uow:
        assert [u.username for u in uow.list_users()] == ["Bob"]
