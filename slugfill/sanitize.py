"""URL slug generation from free-text titles.

The sanitizer is built once from an explicit SlugConfig and never
checks uniqueness; that is the resolver's job.
"""

from typing import Optional

from slugify import slugify

from .config import SlugConfig


class SlugSanitizer:
    """Turns free text into a lowercase, transliterated, separator-joined slug."""

    def __init__(self, config: Optional[SlugConfig] = None):
        self._config = config or SlugConfig()

    @property
    def config(self) -> SlugConfig:
        return self._config

    def sanitize(self, text: str) -> str:
        """Sanitize text into a URL-safe slug.

        Args:
            text: Input text (e.g., glossary title)

        Returns:
            URL-safe slug, or the configured fallback slug when nothing
            usable survives sanitizing

        Examples:
            >>> SlugSanitizer().sanitize("Hello World")
            'hello-world'
            >>> SlugSanitizer().sanitize("Café Crème")
            'cafe-creme'
            >>> SlugSanitizer().sanitize("!!!")
            'untitled'
        """
        config = self._config
        slug = slugify(
            text,
            separator=config.fallback_character,
            max_length=config.max_length,
            word_boundary=True,
            replacements=[list(pair) for pair in config.replacements],
        )
        return slug or config.fallback_slug


def generate_candidate(title: str, sanitizer) -> str:
    """
    Produce the base slug for a title.

    Args:
        title: Non-empty title text
        sanitizer: Object with ``sanitize(text) -> str``

    Returns:
        Candidate slug, not yet checked for uniqueness
    """
    return sanitizer.sanitize(title)
