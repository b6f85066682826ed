"""Repository naming convention: ``{batch}-{category-tag}-{rest}``.

Names are split into ordered segments and reassembled, rather than sliced by
computed offsets, so every derived field can be traced to one segment.

Examples
--------
>>> parsed = parse_repo_name("e17-ml-vision-assistant")
>>> (parsed.batch, parsed.category_tag, parsed.title)
('e17', 'ml', 'Vision Assistant')
>>> parsed.short_name
'e17-vision-assistant'

"""

from __future__ import annotations

import dataclasses
import re

from orgfolio.errors import MalformedNameError

_SEGMENT_COUNT = 3
_WORD_SEPARATORS = re.compile(r"[-_\s]+")


@dataclasses.dataclass(frozen=True, slots=True)
class ParsedName:
    """Structured fields derived from a repository name."""

    full_name: str
    batch: str
    category_tag: str
    remainder: str

    @property
    def title(self) -> str:
        """Return the human-readable project title."""
        return format_title(self.remainder)

    @property
    def short_name(self) -> str:
        """Return the name without its category tag, e.g. ``e17-vision``."""
        return f"{self.batch}-{self.remainder}"


def format_title(text: str) -> str:
    """Expand a kebab- or snake-case fragment into title-cased words.

    >>> format_title("kebab-case")
    'Kebab Case'
    >>> format_title("iot_smart--home")
    'Iot Smart Home'

    """
    words = [word for word in _WORD_SEPARATORS.split(text) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def parse_repo_name(name: str) -> ParsedName:
    """Split ``name`` into batch, category tag and remainder.

    Raises
    ------
    MalformedNameError
        If the name has fewer than three ``-``-separated segments or any of
        them is empty.

    """
    segments = name.split("-", _SEGMENT_COUNT - 1)
    if len(segments) < _SEGMENT_COUNT or not all(segments):
        raise MalformedNameError(name)

    batch, category_tag, remainder = segments
    return ParsedName(
        full_name=name,
        batch=batch,
        category_tag=category_tag,
        remainder=remainder,
    )


__all__ = ["ParsedName", "format_title", "parse_repo_name"]
