"""Database engine and session management."""
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from daily_paydown.db.models import (  # noqa: F401  # pylint: disable=unused-import
    AccountSelection, BalanceSnapshot, DailyReport, Device, LinkedItem,
    Transaction, User)


class Database:
    """Owns one SQLAlchemy engine. Constructed per process and injected."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        if url.startswith("sqlite"):
            kwargs: dict = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
                # One shared connection so every session sees the same in-memory DB
                kwargs["poolclass"] = StaticPool
        else:
            kwargs = {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}
        self.url = url
        self.engine = create_engine(url, echo=echo, **kwargs)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Yield a database session; commits on success, rolls back on error."""
        session = Session(self.engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init(self) -> None:
        """Create all tables. Safe to call on startup (idempotent for existing tables)."""
        SQLModel.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
