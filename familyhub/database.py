import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from familyhub.errors import InternalError

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Owns the engine and session factory. Built once per app and handed to
    every component that needs the record store.
    """

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs: dict[str, object] = {"future": True, "echo": echo}

        if url.startswith("sqlite"):
            # Requests run in a threadpool; wait on the write lock instead of failing
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        else:
            engine_kwargs.update(
                {
                    "pool_pre_ping": True,
                    "pool_recycle": 1800,
                    "pool_size": 5,
                    "max_overflow": 10,
                }
            )

        self.url = url
        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            class_=Session,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    def create_all(self) -> None:
        # Import models so SQLAlchemy registers tables
        from familyhub import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Yields a session and commits on success, rolls back on any error.

        Constraint violations propagate so callers can map them to domain
        errors. Any other database failure is logged and surfaced as an
        opaque InternalError.
        """
        s: Session = self.SessionLocal()
        try:
            yield s
            s.commit()
        except IntegrityError:
            s.rollback()
            raise
        except SQLAlchemyError as exc:
            s.rollback()
            logger.exception("Database operation failed")
            raise InternalError() from exc
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()
