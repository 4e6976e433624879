"""
Database connection management for the local embedded store
"""
import logging
import threading
from typing import Optional
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager

from lineageweaver.config.settings import settings

logger = logging.getLogger(__name__)


# SQLAlchemy 2.0 base class for models
class Base(DeclarativeBase):
    pass


def is_memory_sqlite(database_url: str) -> bool:
    """True for ``sqlite://`` and ``sqlite:///:memory:`` URLs."""
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


class DatabaseManager:
    """Database connection and session management"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.database.database_url
        self._engine: Optional[object] = None
        self._session_factory: Optional[sessionmaker] = None
        # Sessions are opened from executor threads; only one may build the schema
        self._init_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._session_factory is not None

    def initialize(self) -> None:
        """Initialize database connection, session factory and schema"""
        with self._init_lock:
            if self._session_factory is not None:
                return

            try:
                if is_memory_sqlite(self.database_url):
                    # One shared connection, otherwise every thread sees its own empty database
                    engine = create_engine(
                        self.database_url,
                        echo=settings.database.database_echo,
                        connect_args={"check_same_thread": False},
                        poolclass=StaticPool,
                    )
                elif self.database_url.startswith('sqlite'):
                    engine = create_engine(
                        self.database_url,
                        echo=settings.database.database_echo,
                        connect_args={"check_same_thread": False}  # Sessions run on executor threads
                    )
                else:
                    engine = create_engine(
                        self.database_url,
                        pool_pre_ping=True,
                        echo=settings.database.database_echo,
                    )

                # Register models on Base before creating tables
                from lineageweaver.database import models  # noqa: F401
                Base.metadata.create_all(engine)

                self._engine = engine
                self._session_factory = sessionmaker(
                    bind=engine,
                    expire_on_commit=False
                )

                logger.info("Local database initialized successfully")

            except Exception as e:
                logger.error(f"Failed to initialize local database: {e}")
                raise

    @contextmanager
    def get_session(self) -> Session:
        """Get a database session with automatic cleanup"""
        if self._session_factory is None:
            self.initialize()

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """Test database connection"""
        try:
            with self.get_session() as session:
                result = session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    def close(self) -> None:
        """Close database connections"""
        with self._init_lock:
            if self._engine:
                self._engine.dispose()
                self._engine = None
                self._session_factory = None
                logger.info("Database connections closed")
