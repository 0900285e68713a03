from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from store_orchestrator.models import Base


class Database:
    """Owns the engine and session factory for the lifetime of the process.

    ``init()`` must run before any session is opened and ``dispose()`` on
    shutdown. The API and the worker share one instance through ``app.state``.
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    def init(self) -> None:
        if self._engine is not None:
            return
        kwargs: dict = {"pool_pre_ping": True}
        if self.url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in self.url or self.url.rstrip("/").endswith("sqlite://"):
                kwargs["poolclass"] = StaticPool
        self._engine = create_engine(self.url, **kwargs)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not initialised; call init() first")
        return self._engine

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not initialised; call init() first")
        return self._session_factory()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None


def get_db(request: Request) -> Iterator[Session]:
    database: Database = request.app.state.services.database
    with database.session() as db:
        yield db
