"""
URL filtering for retry logic.

Decides whether a request URL is subject to retries. Patterns are regular
expressions searched anywhere in the URL. Compiled patterns are cached in a
PatternCache keyed by the configuration's `settings_version`, so compilation
is amortized across calls and redone only when the pattern list changes.
"""

import re
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Pattern

import structlog

from fetch_retry.models.config import RetryConfig
from fetch_retry.models.enums import UrlFilterMode

logger = structlog.get_logger(__name__)

MAX_PATTERN_LENGTH = 500

# Quantifier shapes known to cause catastrophic backtracking:
# stacked quantifiers (+*, *+), 3+ digit repetition bounds, runs of 3+
# quantifier characters, and a quantified group that itself ends in an
# unbounded quantifier, e.g. (a+)+
_DANGEROUS_QUANTIFIERS = re.compile(
    r"(\+\*|\*\+|\{\d{3,}(,\d*)?\}|\{\d*,\d{3,}\}|\+{3,}|\*{3,}|[+*]\)[+*{])"
)


def is_dangerous_pattern(pattern: str) -> bool:
    """Return True if the pattern looks prone to catastrophic backtracking."""
    return bool(_DANGEROUS_QUANTIFIERS.search(pattern))


def compile_patterns(patterns: Iterable[str]) -> tuple[Pattern[str], ...]:
    """
    Compile URL patterns, skipping unsafe or invalid ones.

    Skipped patterns are logged as warnings and never reach the matcher.
    """
    compiled: list[Pattern[str]] = []
    for pattern in patterns:
        if len(pattern) > MAX_PATTERN_LENGTH:
            logger.warning(
                "URL pattern too long, skipping",
                length=len(pattern),
                pattern_prefix=pattern[:50],
            )
            continue

        if is_dangerous_pattern(pattern):
            logger.warning(
                "URL pattern contains potentially dangerous repetition quantifiers, skipping",
                pattern=pattern,
            )
            continue

        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning("Invalid URL regex pattern, skipping", pattern=pattern, error=str(e))

    return tuple(compiled)


@dataclass(frozen=True)
class _CacheEntry:
    version: int
    sources: tuple[str, ...]
    patterns: tuple[Pattern[str], ...]

    def matches(self, sources: tuple[str, ...], version: int) -> bool:
        return self.version == version and self.sources == sources


class PatternCache:
    """
    Cache of compiled URL patterns keyed by (settings_version, pattern list).

    The entry is replaced wholesale on a miss, never edited in place, so
    concurrent readers always see a consistent entry. A cache can be shared
    across filters and configurations; a different pattern list at the same
    version is a miss.
    """

    def __init__(self):
        self._entry: Optional[_CacheEntry] = None
        self._lock = threading.Lock()
        self.compilations = 0

    @property
    def version(self) -> Optional[int]:
        entry = self._entry
        return entry.version if entry else None

    def get(self, patterns: Iterable[str], version: int) -> tuple[Pattern[str], ...]:
        """Return compiled patterns for `patterns` at `version`, compiling them on a miss."""
        sources = tuple(patterns)
        entry = self._entry
        if entry is not None and entry.matches(sources, version):
            return entry.patterns

        with self._lock:
            entry = self._entry
            if entry is not None and entry.matches(sources, version):
                return entry.patterns

            compiled = compile_patterns(sources)
            self._entry = _CacheEntry(version=version, sources=sources, patterns=compiled)
            self.compilations += 1

        logger.debug("Compiled URL patterns (cached)", count=len(compiled), version=version)
        return compiled

    def invalidate(self) -> None:
        """Drop the cached entry so the next lookup recompiles."""
        with self._lock:
            self._entry = None


class UrlFilter:
    """
    Decides whether retry logic applies to a URL.

    Rules:
    - No usable patterns: retry everything, unless mode is INCLUDE
      (an empty include list matches nothing)
    - INCLUDE: retry only URLs matching at least one pattern
    - EXCLUDE: retry only URLs matching none of the patterns
    """

    def __init__(self, cache: Optional[PatternCache] = None):
        self.cache = cache or PatternCache()

    def should_retry(self, url: str, config: RetryConfig) -> bool:
        mode = config.url_filter_mode

        if not config.url_patterns:
            if mode == UrlFilterMode.INCLUDE:
                logger.debug("No URL patterns configured with include mode, bypassing retry logic")
                return False
            return True

        compiled = self.cache.get(config.url_patterns, config.settings_version)

        if not compiled:
            if mode == UrlFilterMode.INCLUDE:
                logger.debug("No valid URL patterns with include mode, bypassing retry logic")
                return False
            logger.debug("No valid URL patterns, applying retry logic to all requests")
            return True

        matches = any(regex.search(url) for regex in compiled)

        if mode == UrlFilterMode.INCLUDE:
            logger.debug("URL filter (include)", url=url, matches=matches)
            return matches
        if mode == UrlFilterMode.EXCLUDE:
            logger.debug("URL filter (exclude)", url=url, matches=matches)
            return not matches

        # Patterns without a mode do not restrict anything
        return True
