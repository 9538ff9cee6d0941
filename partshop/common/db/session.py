from contextlib import contextmanager
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import RemoteOperationError
from ..models import Base


def create_engine_for(database_url: str):
    # Ensure sqlite file parent directory exists to avoid 'unable to open database file'
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.split("sqlite:///")[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # one shared connection so every session sees the same in-memory db
        return create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, future=True)


def create_session_factory(database_url: str):
    """Return a ``get_session`` context manager bound to ``database_url``."""
    engine = create_engine_for(database_url)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

    @contextmanager
    def get_session():
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise RemoteOperationError("database", f"Database operation failed: {exc.__class__.__name__}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    get_session.engine = engine
    return get_session


def init_db(session_factory) -> None:
    Base.metadata.create_all(session_factory.engine)
