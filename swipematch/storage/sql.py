"""SQL storage backend built on SQLAlchemy."""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Collection, Dict, Iterable, Iterator, List, Optional, Set

import sentry_sdk
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    or_,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from swipematch.models.match import Match
from swipematch.models.message import Message, MessageCreate
from swipematch.models.swipe import Swipe
from swipematch.models.user import User, UserCreate
from swipematch.storage.base import Storage, UnitOfWork
from swipematch.utils.clock import utcnow
from swipematch.utils.errors import (
    ConflictError,
    DatabaseError,
    StorageUnavailableError,
    SwipeMatchError,
)
from swipematch.utils.locks import KeyedLockRegistry, normalize_pair
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class UserDB(Base):
    """User database model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True)
    name: Mapped[str] = mapped_column(String(100))
    age: Mapped[int] = mapped_column(Integer)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    image: Mapped[str] = mapped_column(String(500))
    distance: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    score: Mapped[float] = mapped_column(Float, default=100.0, index=True)
    likes_received: Mapped[int] = mapped_column(Integer, default=0)
    dislikes_received: Mapped[int] = mapped_column(Integer, default=0)
    credits_remaining: Mapped[int] = mapped_column(Integer, default=0)
    last_credit_reset: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (CheckConstraint("credits_remaining >= 0", name="ck_users_credits_non_negative"),)


# Usernames are unique regardless of case
Index("uq_users_username_lower", func.lower(UserDB.username), unique=True)


class SwipeDB(Base):
    """Swipe database model. One row per ordered (swiper, swiped) pair."""

    __tablename__ = "swipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    swiper_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    swiped_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    liked: Mapped[bool] = mapped_column(Boolean)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("swiper_id", "swiped_id", name="uq_swipes_ordered_pair"),
        CheckConstraint("swiper_id != swiped_id", name="ck_swipes_no_self_swipe"),
    )


class MatchDB(Base):
    """Match database model. The pair is stored normalized (user1_id < user2_id)."""

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user1_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    user2_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_matches_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_matches_normalized_pair"),
    )


class MessageDB(Base):
    """Message database model."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(Integer, ForeignKey("matches.id"), index=True)
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    receiver_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    content: Mapped[str] = mapped_column(Text)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


def _model_to_dict(model: Any) -> Dict[str, Any]:
    """Convert a SQLAlchemy model to a dictionary."""
    return {c.name: getattr(model, c.name) for c in model.__table__.columns}


def _redact_url(database_url: str) -> str:
    safe_url = database_url
    if "@" in safe_url:
        try:
            part1, part2 = safe_url.rsplit("@", 1)
            if ":" in part1:
                scheme_user, _ = part1.rsplit(":", 1)
                safe_url = f"{scheme_user}:***@{part2}"
        except ValueError:
            safe_url = "REDACTED_MALFORMED_URL"
    return safe_url


def create_database_engine(database_url: str, echo: bool = False, pool_timeout: float = 30.0) -> Engine:
    """
    Create a SQLAlchemy engine for `database_url`.

    Raises:
        DatabaseError: If the URL is missing or the engine cannot be created.
    """
    if not database_url:
        raise DatabaseError("DATABASE_URL is not configured")

    # SQLAlchemy 1.4+ requires postgresql:// instead of postgres://
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    kwargs: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": pool_timeout}
    else:
        kwargs["pool_recycle"] = 300
        kwargs["pool_timeout"] = pool_timeout

    try:
        engine = create_engine(database_url, **kwargs)
        logger.info("Database engine created", url=_redact_url(database_url))
        return engine
    except Exception as e:
        safe_url = _redact_url(database_url)
        logger.error("Failed to create database engine", error=str(e), url=safe_url)
        raise DatabaseError("Failed to connect to database", details={"error": str(e), "url": safe_url}) from e


class SqlStorage(Storage):
    """
    SQLAlchemy storage.

    In-process callers are serialized through a `KeyedLockRegistry`; across
    processes the engine relies on `SELECT ... FOR UPDATE` on user rows and
    the unique constraints on swipes and matches.
    """

    def __init__(
        self,
        engine: Engine,
        locks: Optional[KeyedLockRegistry] = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        self.engine = engine
        self.locks = locks or KeyedLockRegistry()
        self.default_timeout = default_timeout
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False, default_timeout: Optional[float] = None) -> "SqlStorage":
        engine = create_database_engine(database_url, echo=echo, pool_timeout=default_timeout or 30.0)
        return cls(engine, default_timeout=default_timeout)

    def init(self) -> None:
        """Create all database tables."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to create database tables", details={"error": str(e)}) from e
        logger.info("Database tables created")

    def close(self) -> None:
        self.engine.dispose()

    def _apply_timeout(self, session: Session, timeout: float) -> None:
        """Bound every database wait in this session to `timeout` seconds."""
        # 0 disables both settings, so round up to at least 1ms
        timeout_ms = max(1, int(timeout * 1000))
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
            session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
        elif dialect == "sqlite":
            session.execute(text(f"PRAGMA busy_timeout = {timeout_ms}"))

    @contextmanager
    def unit_of_work(self, lock_keys: Iterable[str] = (), timeout: Optional[float] = None) -> Iterator[UnitOfWork]:
        if timeout is None:
            timeout = self.default_timeout
        with (
            self.locks.acquire(lock_keys, timeout),
            sentry_sdk.start_span(op="db.transaction", name="unit_of_work") as span,
        ):
            session = self._session_factory()
            try:
                if timeout is not None:
                    self._apply_timeout(session, timeout)
                yield SqlUnitOfWork(session)
                session.commit()
            except SwipeMatchError:
                session.rollback()
                span.set_status("aborted")
                raise
            except (OperationalError, PoolTimeoutError) as e:
                session.rollback()
                span.set_status("unavailable")
                logger.warning("Storage unavailable", error=str(e))
                raise StorageUnavailableError("Storage is temporarily unavailable", details={"error": str(e)}) from e
            except SQLAlchemyError as e:
                session.rollback()
                span.set_status("internal_error")
                logger.error("Database operation failed", error=str(e))
                raise DatabaseError("Database operation failed", details={"error": str(e)}) from e
            except Exception:
                session.rollback()
                span.set_status("internal_error")
                raise
            finally:
                session.close()


class SqlUnitOfWork(UnitOfWork):
    """Unit of work bound to one SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _flush_unique(self, instance: Any, message: str, details: Dict[str, Any]) -> None:
        self.session.add(instance)
        try:
            self.session.flush()
        except IntegrityError as e:
            raise ConflictError(message, details={**details, "error": str(e.orig)}) from e

    def lock_users(self, user_ids: Iterable[int]) -> None:
        ids = sorted(set(user_ids))
        if not ids:
            return
        query = select(UserDB).where(UserDB.id.in_(ids)).order_by(UserDB.id).with_for_update()
        self.session.execute(query.execution_options(populate_existing=True)).scalars().all()

    # Users
    def get_user(self, user_id: int) -> Optional[User]:
        row = self.session.get(UserDB, user_id)
        return User.model_validate(_model_to_dict(row)) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        query = select(UserDB).where(func.lower(UserDB.username) == username.lower())
        row = self.session.execute(query).scalars().first()
        return User.model_validate(_model_to_dict(row)) if row else None

    def insert_user(
        self, data: UserCreate, *, score: float, credits_remaining: int, created_at: datetime
    ) -> User:
        if self.get_user_by_username(data.username):
            raise ConflictError(f"Username already taken: {data.username}", details={"username": data.username})
        row = UserDB(
            **data.model_dump(),
            score=score,
            likes_received=0,
            dislikes_received=0,
            credits_remaining=credits_remaining,
            last_credit_reset=created_at,
            created_at=created_at,
        )
        self._flush_unique(row, f"Username already taken: {data.username}", {"username": data.username})
        return User.model_validate(_model_to_dict(row))

    def save_user(self, user: User) -> User:
        row = self.session.get(UserDB, user.id)
        if row is None:
            raise DatabaseError("Cannot save unknown user", details={"user_id": user.id})
        row.score = user.score
        row.likes_received = user.likes_received
        row.dislikes_received = user.dislikes_received
        row.credits_remaining = user.credits_remaining
        row.last_credit_reset = user.last_credit_reset
        self.session.flush()
        return User.model_validate(_model_to_dict(row))

    def list_users(self, exclude: Collection[int] = ()) -> List[User]:
        query = select(UserDB).order_by(UserDB.score.desc(), UserDB.id.asc())
        if exclude:
            query = query.where(UserDB.id.notin_(list(exclude)))
        rows = self.session.execute(query).scalars().all()
        return [User.model_validate(_model_to_dict(r)) for r in rows]

    # Swipes
    def find_swipe(self, swiper_id: int, swiped_id: int) -> Optional[Swipe]:
        query = select(SwipeDB).where(SwipeDB.swiper_id == swiper_id, SwipeDB.swiped_id == swiped_id)
        row = self.session.execute(query).scalars().first()
        return Swipe.model_validate(_model_to_dict(row)) if row else None

    def insert_swipe(self, swiper_id: int, swiped_id: int, liked: bool, created_at: datetime) -> Swipe:
        row = SwipeDB(swiper_id=swiper_id, swiped_id=swiped_id, liked=liked, created_at=created_at)
        self._flush_unique(row, "Swipe already recorded", {"swiper_id": swiper_id, "swiped_id": swiped_id})
        return Swipe.model_validate(_model_to_dict(row))

    def swiped_ids(self, swiper_id: int) -> Set[int]:
        query = select(SwipeDB.swiped_id).where(SwipeDB.swiper_id == swiper_id)
        return set(self.session.execute(query).scalars().all())

    # Matches
    def find_match(self, user_a: int, user_b: int) -> Optional[Match]:
        user1_id, user2_id = normalize_pair(user_a, user_b)
        query = select(MatchDB).where(MatchDB.user1_id == user1_id, MatchDB.user2_id == user2_id)
        row = self.session.execute(query).scalars().first()
        return Match.model_validate(_model_to_dict(row)) if row else None

    def get_match(self, match_id: int) -> Optional[Match]:
        row = self.session.get(MatchDB, match_id)
        return Match.model_validate(_model_to_dict(row)) if row else None

    def insert_match(self, user_a: int, user_b: int, created_at: datetime) -> Match:
        user1_id, user2_id = normalize_pair(user_a, user_b)
        row = MatchDB(user1_id=user1_id, user2_id=user2_id, created_at=created_at)
        self._flush_unique(row, "Match already exists", {"user1_id": user1_id, "user2_id": user2_id})
        return Match.model_validate(_model_to_dict(row))

    def list_matches(self, user_id: int) -> List[Match]:
        query = (
            select(MatchDB).where(or_(MatchDB.user1_id == user_id, MatchDB.user2_id == user_id)).order_by(MatchDB.id)
        )
        return [Match.model_validate(_model_to_dict(r)) for r in self.session.execute(query).scalars().all()]

    # Messages
    def insert_message(self, data: MessageCreate, created_at: datetime) -> Message:
        row = MessageDB(**data.model_dump(), read=False, created_at=created_at)
        self.session.add(row)
        self.session.flush()
        return Message.model_validate(_model_to_dict(row))

    def list_messages(self, match_id: int) -> List[Message]:
        query = select(MessageDB).where(MessageDB.match_id == match_id).order_by(MessageDB.created_at, MessageDB.id)
        return [Message.model_validate(_model_to_dict(r)) for r in self.session.execute(query).scalars().all()]

    def count_unread(self, user_id: int) -> int:
        query = select(func.count(MessageDB.id)).where(MessageDB.receiver_id == user_id, MessageDB.read.is_(False))
        return int(self.session.execute(query).scalar_one())
