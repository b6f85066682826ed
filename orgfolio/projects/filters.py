"""Regex filter evaluation for repository names.

Patterns are *not* anchored automatically: ``matches`` uses :func:`re.search`,
so a category pattern such as ``e\\d{2}-ml-`` matches anywhere in the name.
The default project gate supplies its own ``^`` anchor.
"""

from __future__ import annotations

import functools
import re
import typing as typ

from orgfolio.errors import InvalidPatternError
from orgfolio.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

DEFAULT_PROJECT_PATTERN = r"^e\d{2}-\w+-"


@functools.lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile and cache ``pattern``.

    Raises
    ------
    InvalidPatternError
        If the pattern is not a valid regular expression.

    """
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidPatternError(pattern, str(exc)) from exc


def matches(name: str, pattern: str) -> bool:
    """Return True when ``pattern`` is found anywhere in ``name``."""
    return compile_pattern(pattern).search(name) is not None


def is_project_name(name: str) -> bool:
    """Return True when ``name`` passes the default naming-convention gate."""
    return matches(name, DEFAULT_PROJECT_PATTERN)


def matches_any(name: str, patterns: cabc.Iterable[str]) -> bool:
    """Return True when at least one of ``patterns`` matches ``name``.

    Invalid patterns are reported and skipped; the remaining patterns are
    still evaluated. An empty pattern list never matches.
    """
    for pattern in patterns:
        try:
            if matches(name, pattern):
                return True
        except InvalidPatternError as exc:
            log_warning(logger, "Skipping filter pattern: %s", exc)
    return False


def invalid_patterns(patterns: cabc.Iterable[str]) -> list[InvalidPatternError]:
    """Return the compilation errors for ``patterns``, in order."""
    errors: list[InvalidPatternError] = []
    for pattern in patterns:
        try:
            compile_pattern(pattern)
        except InvalidPatternError as exc:
            errors.append(exc)
    return errors


def select_matching(
    names: cabc.Iterable[str], patterns: cabc.Sequence[str]
) -> list[str]:
    """Return the names matched by any of ``patterns``, preserving order."""
    usable = [pattern for pattern in patterns if _compiles(pattern)]
    return [name for name in names if matches_any(name, usable)]


def _compiles(pattern: str) -> bool:
    try:
        compile_pattern(pattern)
    except InvalidPatternError as exc:
        log_warning(logger, "Skipping filter pattern: %s", exc)
        return False
    return True


__all__ = [
    "DEFAULT_PROJECT_PATTERN",
    "compile_pattern",
    "invalid_patterns",
    "is_project_name",
    "matches",
    "matches_any",
    "select_matching",
]
