"""Slug generation for judging group URLs."""

from __future__ import annotations

import re
from collections.abc import Callable


class SlugGenerator:
    """Generate URL-safe group slugs.

    Slugs are lower-cased, whitespace becomes ``-``, anything outside
    ``[a-z0-9-]`` is dropped and runs of dashes collapse.
    """

    def __init__(self, max_length: int | None = 50) -> None:
        """Initialize slug generator.

        Args:
            max_length: Maximum length for generated slugs. Use None to disable truncation.
        """
        self.max_length = max_length

    def slugify(self, value: str) -> str:
        """Generate a URL-safe slug from free text."""
        return self.truncate(self._slugify(value))

    def unique_slug(
        self,
        value: str,
        exists: Callable[[str], bool],
        suffix_source: Callable[[], str],
    ) -> str:
        """Generate a slug that ``exists`` reports as free.

        On collision a short numeric suffix is appended, taken from
        ``suffix_source`` (normally the tail of the current timestamp).
        """
        base = self.slugify(value) or "group"
        if not exists(base):
            return base

        attempt = 0
        while True:
            suffix = suffix_source() if attempt == 0 else f"{suffix_source()}{attempt}"
            head = base
            if self.max_length is not None:
                head = base[: max(1, self.max_length - len(suffix) - 1)].rstrip("-")
            candidate = f"{head}-{suffix}"
            if not exists(candidate):
                return candidate
            attempt += 1

    def truncate(self, value: str) -> str:
        """Truncate a value to the configured max length."""
        if self.max_length is None:
            return value
        return value[: self.max_length].rstrip("-")

    @staticmethod
    def _slugify(value: str) -> str:
        slug = re.sub(r"\s+", "-", value.lower())
        slug = re.sub(r"[^a-z0-9-]", "", slug)
        slug = re.sub(r"-+", "-", slug)
        return slug.strip("-")
