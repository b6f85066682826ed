"""Unit tests for repository name parsing."""

from __future__ import annotations

import pytest

from orgfolio.errors import MalformedNameError
from orgfolio.projects.naming import format_title, parse_repo_name


class TestParseRepoName:
    """Tests for parse_repo_name."""

    def test_splits_batch_tag_and_remainder(self) -> None:
        """The first two dashes delimit batch and category tag."""
        parsed = parse_repo_name("e17-ml-vision-assistant")

        assert parsed.batch == "e17"
        assert parsed.category_tag == "ml"
        assert parsed.remainder == "vision-assistant"
        assert parsed.full_name == "e17-ml-vision-assistant"

    def test_derives_title_and_short_name(self) -> None:
        """Title expands the remainder; short name drops the tag."""
        parsed = parse_repo_name("e19-3yp-smart-water_meter")

        assert parsed.title == "Smart Water Meter"
        assert parsed.short_name == "e19-smart-water_meter"

    @pytest.mark.parametrize(
        "name",
        ["docs-site", "website", "e17-ml", "e17--vision", "-ml-vision", "e17-ml-"],
    )
    def test_rejects_names_without_three_segments(self, name: str) -> None:
        """Names with missing or empty segments raise MalformedNameError."""
        with pytest.raises(MalformedNameError) as excinfo:
            parse_repo_name(name)

        assert excinfo.value.name == name
        assert name in str(excinfo.value)


class TestFormatTitle:
    """Tests for format_title."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("kebab-case", "Kebab Case"),
            ("snake_case_name", "Snake Case Name"),
            ("already Spaced", "Already Spaced"),
            ("iot--home", "Iot Home"),
            ("eHealth-app", "EHealth App"),
            ("", ""),
        ],
    )
    def test_capitalises_each_word(self, text: str, expected: str) -> None:
        """Separators collapse to single spaces and words gain a capital."""
        assert format_title(text) == expected
