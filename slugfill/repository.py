"""
Slug Repository.

Responsibilities:
- Count and fetch rows whose slug is blank.
- Count active rows holding a given slug.
- Persist a slug by primary key, one committed unit of work per row.

Non-Responsibilities:
- No slug generation.
- No uniqueness decisions.

Invariant:
Repositories must not encode domain decisions.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import column, func, inspect, or_, select, table, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import TableConfig
from .logger import StructuredLogger, get_logger


class StorageUnavailable(Exception):
    """Raised when a query or update against the store fails to execute."""
    pass


class SlugRepository:
    """Storage operations for one table, as named by a TableConfig."""

    def __init__(
        self,
        session: Session,
        config: Optional[TableConfig] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.session = session
        self.config = config or TableConfig()
        self.logger = logger or get_logger()
        self.table = table(self.config.table, *(column(name) for name in self.config.columns))

    @property
    def id_col(self):
        return self.table.c[self.config.id_column]

    @property
    def title_col(self):
        return self.table.c[self.config.title_column]

    @property
    def slug_col(self):
        return self.table.c[self.config.slug_column]

    def blank_slug_clause(self):
        return or_(self.slug_col == "", self.slug_col.is_(None))

    def active_clauses(self) -> list:
        if not self.config.deleted_column:
            return []
        return [self.table.c[self.config.deleted_column] == 0]

    @contextmanager
    def storage_errors(self, operation: str, **context) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            self.logger.error(
                "Storage operation failed",
                operation=operation,
                table=self.config.table,
                error=str(e),
                **context,
            )
            raise StorageUnavailable(f"{operation} failed on {self.config.table}: {e}") from e

    def missing_prerequisites(self) -> List[str]:
        """
        Check that the table and every configured column exist.

        Returns a list of problems. Empty list means the schema is ready.
        """
        with self.storage_errors("inspect_schema"):
            inspector = inspect(self.session.get_bind())
            if not inspector.has_table(self.config.table):
                return [f"Table '{self.config.table}' does not exist"]
            present = {c["name"] for c in inspector.get_columns(self.config.table)}

        return [
            f"Column '{name}' missing from table '{self.config.table}'"
            for name in self.config.columns
            if name not in present
        ]

    def count_rows_with_blank_slug(self) -> int:
        """Count rows whose slug is '' or NULL, soft-deleted rows included."""
        stmt = select(func.count()).select_from(self.table).where(self.blank_slug_clause())
        with self.storage_errors("count_rows_with_blank_slug"):
            return self.session.execute(stmt).scalar_one()

    def fetch_rows_with_blank_slug(self) -> List[RowMapping]:
        """
        Fetch all rows whose slug is blank, ordered by id.

        Returns:
            Row mappings with keys id, title and slug, read in full up front
        """
        stmt = (
            select(
                self.id_col.label("id"),
                self.title_col.label("title"),
                self.slug_col.label("slug"),
            )
            .select_from(self.table)
            .where(self.blank_slug_clause())
            .order_by(self.id_col)
        )
        with self.storage_errors("fetch_rows_with_blank_slug"):
            return list(self.session.execute(stmt).mappings().all())

    def count_active_rows_with_slug_excluding(self, slug: str, exclude_id: int) -> int:
        """Count active rows other than ``exclude_id`` whose slug equals ``slug``."""
        stmt = (
            select(func.count())
            .select_from(self.table)
            .where(self.slug_col == slug, self.id_col != exclude_id, *self.active_clauses())
        )
        with self.storage_errors("count_active_rows_with_slug", slug=slug, exclude_id=exclude_id):
            return self.session.execute(stmt).scalar_one()

    def persist_slug(self, row_id: int, slug: str) -> bool:
        """
        Write ``slug`` to the row with primary key ``row_id`` and commit.

        Returns:
            True when exactly one row was updated
        """
        stmt = (
            update(self.table)
            .where(self.id_col == row_id)
            .values({self.config.slug_column: slug})
        )
        with self.storage_errors("persist_slug", row_id=row_id, slug=slug):
            result = self.session.execute(stmt)
            self.session.commit()
        return result.rowcount == 1
