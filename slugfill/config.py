"""
Configuration objects for the slug backfill.

Values come from explicit arguments first, then SLUGFILL_* environment
variables (optionally loaded from .env by slugfill.env), then defaults
matching the glossary table.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

DEFAULT_DATABASE_URL = "sqlite:///data/glossary.db"

DEFAULT_TABLE = "tx_glossary2_domain_model_glossary"
DEFAULT_ID_COLUMN = "uid"
DEFAULT_TITLE_COLUMN = "title"
DEFAULT_SLUG_COLUMN = "path_segment"
DEFAULT_DELETED_COLUMN = "deleted"


def _env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    return default if value is None else value


def database_url_from_env() -> str:
    return _env("SLUGFILL_DATABASE_URL", DEFAULT_DATABASE_URL)


@dataclass(frozen=True)
class TableConfig:
    """Names of the table and columns the backfill works on."""

    table: str = DEFAULT_TABLE
    id_column: str = DEFAULT_ID_COLUMN
    title_column: str = DEFAULT_TITLE_COLUMN
    slug_column: str = DEFAULT_SLUG_COLUMN
    # None means the table has no soft-delete flag and every row is active
    deleted_column: Optional[str] = DEFAULT_DELETED_COLUMN

    @property
    def columns(self) -> Tuple[str, ...]:
        names = (self.id_column, self.title_column, self.slug_column)
        if self.deleted_column:
            names += (self.deleted_column,)
        return names

    @classmethod
    def from_env(cls) -> "TableConfig":
        deleted = _env("SLUGFILL_DELETED_COLUMN", DEFAULT_DELETED_COLUMN)
        return cls(
            table=_env("SLUGFILL_TABLE", DEFAULT_TABLE),
            id_column=_env("SLUGFILL_ID_COLUMN", DEFAULT_ID_COLUMN),
            title_column=_env("SLUGFILL_TITLE_COLUMN", DEFAULT_TITLE_COLUMN),
            slug_column=_env("SLUGFILL_SLUG_COLUMN", DEFAULT_SLUG_COLUMN),
            deleted_column=deleted or None,
        )

    def override(self, **changes) -> "TableConfig":
        """Return a copy with the non-None entries of ``changes`` applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if changes.get("deleted_column") == "":
            changes["deleted_column"] = None
        return replace(self, **changes)


@dataclass(frozen=True)
class SlugConfig:
    """
    Column configuration for the slug sanitizer.

    Attributes:
        fallback_character: Separator placed between words
        replacements: (old, new) pairs applied before transliteration
        max_length: Truncate on a word boundary to this length (0 = no limit)
        fallback_slug: Used when a non-empty title sanitizes to nothing
    """

    fallback_character: str = "-"
    replacements: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    max_length: int = 0
    fallback_slug: str = "untitled"

    def __post_init__(self):
        # Freeze list input so the config stays hashable
        object.__setattr__(
            self, "replacements", tuple(tuple(pair) for pair in self.replacements)
        )
        if self.max_length < 0:
            raise ValueError(f"max_length must be >= 0, got {self.max_length}")

    @classmethod
    def from_env(cls, replacements: Sequence[Tuple[str, str]] = ()) -> "SlugConfig":
        return cls(
            fallback_character=_env("SLUGFILL_FALLBACK_CHARACTER", "-"),
            replacements=tuple(replacements),
            max_length=int(_env("SLUGFILL_MAX_LENGTH", "0") or 0),
        )
