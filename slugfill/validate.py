"""
Validate slug invariants against a live database.

After a backfill every active row with a title must carry a slug, and
no two active rows may share one.
"""

from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .config import TableConfig
from .repository import SlugRepository


def find_duplicate_slugs(session: Session, config: Optional[TableConfig] = None) -> Dict[str, List[int]]:
    """
    Map each slug held by more than one active row to the ids holding it.
    """
    repo = SlugRepository(session, config)
    slug, row_id = repo.slug_col, repo.id_col
    duplicated = (
        select(slug)
        .select_from(repo.table)
        .where(slug != "", slug.is_not(None), *repo.active_clauses())
        .group_by(slug)
        .having(func.count() > 1)
    )
    stmt = (
        select(slug, row_id)
        .select_from(repo.table)
        .where(slug.in_(duplicated), *repo.active_clauses())
        .order_by(slug, row_id)
    )
    with repo.storage_errors("find_duplicate_slugs"):
        rows = session.execute(stmt).all()

    duplicates: Dict[str, List[int]] = {}
    for value, ident in rows:
        duplicates.setdefault(value, []).append(int(ident))
    return duplicates


def find_unfilled_rows(session: Session, config: Optional[TableConfig] = None) -> List[int]:
    """Ids of active rows that have a title but still no slug."""
    repo = SlugRepository(session, config)
    title = repo.title_col
    stmt = (
        select(repo.id_col)
        .select_from(repo.table)
        .where(
            repo.blank_slug_clause(),
            title.is_not(None),
            title != "",
            *repo.active_clauses(),
        )
        .order_by(repo.id_col)
    )
    with repo.storage_errors("find_unfilled_rows"):
        return [int(ident) for ident in session.execute(stmt).scalars().all()]


def validate(session: Session, config: Optional[TableConfig] = None) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []

    for slug, ids in find_duplicate_slugs(session, config).items():
        errors.append(f"Slug '{slug}' is shared by rows {', '.join(str(i) for i in ids)}")

    unfilled = find_unfilled_rows(session, config)
    if unfilled:
        errors.append(
            f"{len(unfilled)} row(s) with a title have no slug: "
            f"{', '.join(str(i) for i in unfilled[:10])}"
            + (" ..." if len(unfilled) > 10 else "")
        )

    return errors
