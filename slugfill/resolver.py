"""
Slug Uniqueness Resolver.

Responsibilities:
- Check a candidate slug against active rows, excluding the row being assigned.
- On collision, probe numbered variants candidate-1 .. candidate-N in order.
- Return the first free variant.

Non-Responsibilities:
- No writes.
- No slug generation.

Invariant:
Given the same database state, the same candidate always resolves to the
same slug: the lowest free counter wins.
"""

from typing import Callable, Optional, Tuple

from .logger import StructuredLogger, get_logger

MAX_ATTEMPTS = 100

CountCollisions = Callable[[str, int], int]


class UniquenessBudgetExhausted(Exception):
    """Raised in strict mode when every numbered variant is taken."""

    def __init__(self, candidate: str, exclude_id: int, max_attempts: int):
        self.candidate = candidate
        self.exclude_id = exclude_id
        self.max_attempts = max_attempts
        super().__init__(
            f"No free slug for row {exclude_id}: '{candidate}' and "
            f"'{candidate}-1' .. '{candidate}-{max_attempts}' are all taken"
        )


class UniquenessResolver:
    """
    Resolve a candidate slug to a value no other active row holds.

    Args:
        count_collisions: Callable(slug, exclude_id) returning how many active
            rows other than exclude_id already hold slug
        max_attempts: Highest numeric suffix to try
        strict: Raise UniquenessBudgetExhausted instead of accepting a duplicate
        logger: Logger for warnings and metrics (default: global logger)
    """

    def __init__(
        self,
        count_collisions: CountCollisions,
        max_attempts: int = MAX_ATTEMPTS,
        strict: bool = False,
        logger: Optional[StructuredLogger] = None,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.count_collisions = count_collisions
        self.max_attempts = max_attempts
        self.strict = strict
        self.logger = logger or get_logger()

    def _is_taken(self, slug: str, exclude_id: int) -> bool:
        self.logger.record_count_query()
        return self.count_collisions(slug, exclude_id) > 0

    def resolve(self, exclude_id: int, candidate: str) -> str:
        """
        Return the slug to persist for row ``exclude_id``.

        If every variant up to max_attempts collides, the last variant is
        returned anyway (or UniquenessBudgetExhausted is raised in strict mode).
        """
        slug, _ = self.resolve_with_status(exclude_id, candidate)
        return slug

    def resolve_with_status(self, exclude_id: int, candidate: str) -> Tuple[str, bool]:
        """
        Like resolve(), but also report whether the budget was exhausted.

        Returns:
            Tuple of (slug, exhausted). When exhausted is True the slug is
            known to collide with another active row.
        """
        if not self._is_taken(candidate, exclude_id):
            return candidate, False

        variant = candidate
        for counter in range(1, self.max_attempts + 1):
            variant = f"{candidate}-{counter}"
            if not self._is_taken(variant, exclude_id):
                self.logger.debug(
                    "Resolved slug collision",
                    row_id=exclude_id,
                    candidate=candidate,
                    slug=variant,
                )
                return variant, False

        self.logger.record_budget_exhausted()
        if self.strict:
            raise UniquenessBudgetExhausted(candidate, exclude_id, self.max_attempts)

        self.logger.warning(
            "Uniqueness budget exhausted, accepting duplicate slug",
            row_id=exclude_id,
            candidate=candidate,
            slug=variant,
            max_attempts=self.max_attempts,
        )
        return variant, True


def resolve_unique(
    exclude_id: int,
    candidate: str,
    count_collisions: CountCollisions,
    max_attempts: int = MAX_ATTEMPTS,
) -> str:
    """Resolve ``candidate`` for row ``exclude_id`` with a default resolver."""
    return UniquenessResolver(count_collisions, max_attempts=max_attempts).resolve(
        exclude_id, candidate
    )
