"""
Slug backfill driver.

Fills blank slug columns with a URL-safe version of each row's title.
Rows are processed one at a time, and every write is committed before
the next row's collision check, so slugs assigned earlier in the same
run are already visible to the resolver.
"""

from typing import Any, Dict, List, Optional

from .logger import StructuredLogger, get_logger
from .repository import SlugRepository
from .resolver import UniquenessResolver
from .sanitize import SlugSanitizer, generate_candidate


class SlugUpdater:
    """Fill empty slug columns of a table from the title column."""

    identifier = "slugfillUpdateSlug"
    title = "Update slugs of glossary records"

    def __init__(
        self,
        repository: SlugRepository,
        sanitizer: Optional[SlugSanitizer] = None,
        resolver: Optional[UniquenessResolver] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.repository = repository
        self.sanitizer = sanitizer or SlugSanitizer()
        self.logger = logger or get_logger()
        self.resolver = resolver or UniquenessResolver(
            repository.count_active_rows_with_slug_excluding,
            logger=self.logger,
        )

    @property
    def description(self) -> str:
        config = self.repository.config
        return (
            f'Update empty slug column "{config.slug_column}" of {config.table} '
            f'records with a URI compatible version of "{config.title_column}"'
        )

    def missing_prerequisites(self) -> List[str]:
        return self.repository.missing_prerequisites()

    def update_necessary(self) -> bool:
        """True when at least one row has an empty or NULL slug."""
        return self.repository.count_rows_with_blank_slug() > 0

    def execute_update(self) -> Dict[str, Any]:
        """
        Fill every blank slug whose row has a title.

        Storage errors propagate and abort the run; rows written before
        the failure stay committed.

        Returns:
            Summary dict: scanned, updated, suffixed, skipped_blank_title,
            exhausted (row ids given a known duplicate), not_persisted
            (row ids whose update touched no row)
        """
        rows = self.repository.fetch_rows_with_blank_slug()
        summary = {
            "scanned": 0,
            "updated": 0,
            "suffixed": 0,
            "skipped_blank_title": 0,
            "exhausted": [],
            "not_persisted": [],
        }
        self.logger.info(
            "Starting slug backfill",
            table=self.repository.config.table,
            rows=len(rows),
        )

        for row in rows:
            summary["scanned"] += 1
            self.logger.record_row_scanned()
            row_id = int(row["id"])
            title = "" if row["title"] is None else str(row["title"])

            if title == "":
                summary["skipped_blank_title"] += 1
                self.logger.record_row_skipped("blank_title")
                self.logger.debug("Skipping row without title", row_id=row_id)
                continue

            candidate = generate_candidate(title, self.sanitizer)
            slug, exhausted = self.resolver.resolve_with_status(row_id, candidate)
            if exhausted:
                summary["exhausted"].append(row_id)

            if not self.repository.persist_slug(row_id, slug):
                summary["not_persisted"].append(row_id)
                self.logger.record_row_skipped("not_persisted")
                self.logger.warning("Slug update touched no row", row_id=row_id, slug=slug)
                continue

            suffixed = slug != candidate
            summary["updated"] += 1
            if suffixed:
                summary["suffixed"] += 1
            self.logger.record_slug_assigned(suffixed=suffixed)
            self.logger.debug("Slug assigned", row_id=row_id, title=title, slug=slug)

        self.logger.info(
            "Slug backfill complete",
            scanned=summary["scanned"],
            updated=summary["updated"],
            skipped_blank_title=summary["skipped_blank_title"],
        )
        return summary
