# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine singleton and store error translation."""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rotation_service.core.config import settings
from rotation_service.core.errors import StoreError
from rotation_service.metrics.prometheus import UPSTREAM_ERRORS


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(url)
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
    )


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise driver failures as StoreError carrying the driver's message."""
    try:
        yield
    except SQLAlchemyError as exc:
        UPSTREAM_ERRORS.labels(target="store").inc()
        detail = getattr(exc, "orig", None) or exc
        raise StoreError(f"{action}: {detail}") from exc


engine = build_engine(settings.DATABASE_URL)
