"""
Database connection handling for the Cert News Risk Analysis System.

DatabaseSettings builds the engine URL from config.yaml or the DB_*
environment variables (DATABASE_URL wins over both).
DatabaseSessionProvider owns the engine and hands out short transactional
session scopes; the services open one scope per record or aggregate row.
"""

import os
import logging
from typing import Any, Dict, Generator, Optional
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine, event, text, Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import OperationalError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)

from newsrisk.models import Base

logger = logging.getLogger(__name__)


@dataclass
class DatabaseSettings:
    """Connection and pool settings."""
    host: str = "localhost"
    port: int = 5432
    database: str = "cert_news"
    user: str = "cert_user"
    password: str = "cert_password"
    url: Optional[str] = None
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False

    @classmethod
    def from_env(cls) -> 'DatabaseSettings':
        """Settings from DB_HOST, DB_PORT, DB_NAME, DB_USER and DB_PASSWORD."""
        return cls(
            host=os.getenv("DB_HOST", cls.host),
            port=int(os.getenv("DB_PORT", str(cls.port))),
            database=os.getenv("DB_NAME", cls.database),
            user=os.getenv("DB_USER", cls.user),
            password=os.getenv("DB_PASSWORD", cls.password),
            echo=os.getenv("DB_ECHO", "false").lower() == "true"
        )

    @classmethod
    def from_config(cls, db_config: Any) -> 'DatabaseSettings':
        """Settings from the ConfigManager database section."""
        return cls(
            host=db_config.host,
            port=db_config.port,
            database=db_config.name,
            user=db_config.user,
            password=db_config.password,
            url=db_config.url,
            pool_size=db_config.pool_size,
            max_overflow=db_config.max_overflow,
            echo=db_config.echo
        )

    def get_url(self) -> str:
        full_url = os.getenv("DATABASE_URL") or self.url
        if full_url:
            return full_url
        return f"postgresql+psycopg2://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"

    def engine_options(self) -> Dict[str, Any]:
        """Pool options for create_engine; SQLite URLs take the driver defaults."""
        if self.get_url().startswith("sqlite"):
            return {}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": True,
        }


# Engine creation is retried while the server refuses connections
db_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(OperationalError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True
)


class DatabaseSessionProvider:
    """
    Hands out transactional sessions to the analysis services.

    Usage:
        provider = DatabaseSessionProvider(DatabaseSettings.from_config(config.database))
        with provider.session_scope() as session:
            records = NewsRecordRepository(session).list_by_risk_level(RiskLevel.MEDIUM)
    """

    def __init__(
        self,
        settings: Optional[DatabaseSettings] = None,
        engine: Optional[Engine] = None
    ):
        """
        Args:
            settings: Connection settings (DB_* environment if omitted)
            engine: Pre-built engine, used by the tests
        """
        self._settings = settings or DatabaseSettings.from_env()
        self._engine = engine
        self._session_factory: Optional[sessionmaker] = None

    def init(self) -> None:
        """Create the engine (if needed) and the session factory. Idempotent."""
        if self._session_factory is not None:
            return

        if self._engine is None:
            self._engine = self._connect()
            logger.info("Connected to database")

            @event.listens_for(self._engine, "connect")
            def on_connect(dbapi_connection, connection_record):
                logger.debug("New database connection established")

        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False
        )

    @db_retry
    def _connect(self) -> Engine:
        engine = create_engine(
            self._settings.get_url(),
            echo=self._settings.echo,
            **self._settings.engine_options()
        )
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return engine

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        One transaction: commits on normal exit, rolls back and re-raises
        on any exception.
        """
        self.init()
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create any missing tables."""
        self.init()
        Base.metadata.create_all(self._engine)
        logger.info("Database tables created")

    def close(self) -> None:
        """Dispose the engine; a later session_scope() reconnects."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._session_factory = None


def create_test_provider(
    engine: Optional[Engine] = None,
    settings: Optional[DatabaseSettings] = None
) -> DatabaseSessionProvider:
    """Provider bound to a caller-built engine (e.g. in-memory SQLite)."""
    return DatabaseSessionProvider(settings=settings, engine=engine)
