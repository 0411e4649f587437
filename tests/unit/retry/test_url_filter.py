"""
Unit tests for UrlFilter and PatternCache.
"""

import pytest

from fetch_retry.models.config import RetryConfig
from fetch_retry.models.enums import UrlFilterMode
from fetch_retry.retry.url_filter import (
    PatternCache,
    UrlFilter,
    compile_patterns,
    is_dangerous_pattern,
)


CHAT_URL = "https://host/v1/chat/completions"
STATIC_URL = "https://host/static/logo.png"


def make_config(patterns=(), mode=None, version=0) -> RetryConfig:
    return RetryConfig(url_patterns=tuple(patterns), url_filter_mode=mode, settings_version=version)


# ============================================================================
# Empty pattern list
# ============================================================================


def test_no_patterns_no_mode_retries_everything():
    url_filter = UrlFilter()
    assert url_filter.should_retry(STATIC_URL, make_config()) is True


def test_no_patterns_exclude_mode_retries_everything():
    url_filter = UrlFilter()
    assert url_filter.should_retry(STATIC_URL, make_config(mode=UrlFilterMode.EXCLUDE)) is True


def test_no_patterns_include_mode_retries_nothing():
    url_filter = UrlFilter()
    assert url_filter.should_retry(CHAT_URL, make_config(mode=UrlFilterMode.INCLUDE)) is False


# ============================================================================
# Include / exclude matching
# ============================================================================


def test_include_mode_requires_a_match():
    url_filter = UrlFilter()
    config = make_config(["/v1/chat/completions"], UrlFilterMode.INCLUDE)

    assert url_filter.should_retry(CHAT_URL, config) is True
    assert url_filter.should_retry(STATIC_URL, config) is False


def test_exclude_mode_rejects_matches():
    url_filter = UrlFilter()
    config = make_config([r"\.png$", "/static/"], UrlFilterMode.EXCLUDE)

    assert url_filter.should_retry(CHAT_URL, config) is True
    assert url_filter.should_retry(STATIC_URL, config) is False


def test_patterns_are_searched_not_anchored():
    url_filter = UrlFilter()
    config = make_config(["chat"], UrlFilterMode.INCLUDE)
    assert url_filter.should_retry(CHAT_URL, config) is True


def test_patterns_without_mode_do_not_restrict():
    url_filter = UrlFilter()
    assert url_filter.should_retry(STATIC_URL, make_config(["/v1/"])) is True


def test_only_invalid_patterns_with_include_mode_retries_nothing():
    url_filter = UrlFilter()
    config = make_config(["(unclosed"], UrlFilterMode.INCLUDE)
    assert url_filter.should_retry(CHAT_URL, config) is False


def test_only_invalid_patterns_with_exclude_mode_retries_everything():
    url_filter = UrlFilter()
    config = make_config(["(unclosed"], UrlFilterMode.EXCLUDE)
    assert url_filter.should_retry(CHAT_URL, config) is True


# ============================================================================
# Pattern safety
# ============================================================================


@pytest.mark.parametrize(
    "pattern",
    [
        "a+*",
        "a*+",
        "a{1000}",
        "a{1,1000}",
        "a+++",
        "a***",
        "(a+)+",
        "(.*)*",
        "(x*){2}",
    ],
)
def test_dangerous_patterns_detected(pattern):
    assert is_dangerous_pattern(pattern) is True


@pytest.mark.parametrize(
    "pattern",
    ["/v1/chat/completions", r"\.png$", "api/(v1|v2)/.*", "a{2,10}", "(ab)+"],
)
def test_safe_patterns_allowed(pattern):
    assert is_dangerous_pattern(pattern) is False


def test_compile_patterns_skips_long_dangerous_and_invalid():
    compiled = compile_patterns(["x" * 501, "(a+)+", "[invalid", "/ok/"])

    assert [p.pattern for p in compiled] == ["/ok/"]


def test_pattern_of_exactly_max_length_is_kept():
    compiled = compile_patterns(["x" * 500])
    assert len(compiled) == 1


# ============================================================================
# PatternCache
# ============================================================================


def test_cache_reuses_compiled_patterns_for_same_version():
    cache = PatternCache()
    first = cache.get(["/v1/"], version=1)
    second = cache.get(["/v1/"], version=1)

    assert first is second
    assert cache.compilations == 1


def test_cache_recompiles_when_patterns_change_at_same_version():
    cache = PatternCache()
    first = cache.get(["/v1/"], version=1)
    second = cache.get(["/v2/"], version=1)

    assert [p.pattern for p in first] == ["/v1/"]
    assert [p.pattern for p in second] == ["/v2/"]
    assert cache.compilations == 2


def test_cache_recompiles_when_version_changes():
    cache = PatternCache()
    cache.get(["/v1/"], version=1)
    cache.get(["/v1/"], version=2)

    assert cache.version == 2
    assert cache.compilations == 2


def test_shared_cache_keeps_configs_apart():
    cache = PatternCache()
    config_a = make_config(["/a/"], UrlFilterMode.INCLUDE)
    config_b = make_config(["/b/"], UrlFilterMode.INCLUDE)

    assert UrlFilter(cache).should_retry("https://h/a/x", config_a) is True
    assert UrlFilter(cache).should_retry("https://h/b/x", config_b) is True
    assert UrlFilter(cache).should_retry("https://h/b/x", config_a) is False
    assert UrlFilter(cache).should_retry("https://h/a/x", config_b) is False


def test_cache_invalidate_forces_recompile():
    cache = PatternCache()
    cache.get(["/v1/"], version=1)
    cache.invalidate()

    assert cache.version is None
    cache.get(["/v1/"], version=1)
    assert cache.compilations == 2


def test_filters_share_cache():
    cache = PatternCache()
    config = make_config(["/v1/"], UrlFilterMode.INCLUDE, version=7)

    UrlFilter(cache).should_retry(CHAT_URL, config)
    UrlFilter(cache).should_retry(STATIC_URL, config)

    assert cache.compilations == 1
