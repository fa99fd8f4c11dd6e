"""
Database schema and connection management.

Uses SQLAlchemy; any SQLAlchemy URL works, and a bare filesystem
path is treated as a SQLite database file.
"""

from pathlib import Path
from typing import Union

from sqlalchemy import create_engine, Column, Integer, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .config import DEFAULT_TABLE

Base = declarative_base()

DatabaseLocation = Union[str, Path]


class GlossaryEntry(Base):
    """Glossary record whose path_segment column holds the URL slug."""

    __tablename__ = DEFAULT_TABLE

    uid = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=True, default="")
    path_segment = Column(Text, nullable=True)
    deleted = Column(Integer, nullable=False, default=0)  # soft-delete flag


def database_url(location: DatabaseLocation) -> str:
    """
    Normalize a database location to a SQLAlchemy URL.

    Args:
        location: SQLAlchemy URL or path to a SQLite database file

    Returns:
        SQLAlchemy URL string
    """
    text = str(location)
    if "://" in text:
        return text
    return f"sqlite:///{text}"


def get_engine(location: DatabaseLocation) -> Engine:
    url = database_url(location)
    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url)


def init_database(location: DatabaseLocation) -> None:
    """
    Initialize database and create the glossary table.

    Args:
        location: SQLAlchemy URL or path to SQLite database file
    """
    engine = get_engine(location)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(location: DatabaseLocation) -> Session:
    """
    Get database session.

    Args:
        location: SQLAlchemy URL or path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = get_engine(location)
    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal()
