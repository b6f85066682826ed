"""Unit tests for catalogue table definitions."""

from __future__ import annotations

import typing as typ

import pytest
from sqlalchemy import String

from orgfolio.storage import CategoryRecord, ProjectRecord

if typ.TYPE_CHECKING:
    from sqlalchemy import Column

# GitHub caps repository names at 100 characters; any segment may use them all.
_GITHUB_NAME_LIMIT = 100


@pytest.mark.parametrize(
    "column",
    [
        ProjectRecord.__table__.c.repo_name,
        ProjectRecord.__table__.c.name,
        ProjectRecord.__table__.c.category_tag,
        ProjectRecord.__table__.c.main_category,
        ProjectRecord.__table__.c.language,
        CategoryRecord.__table__.c.category_code,
        CategoryRecord.__table__.c.type,
    ],
    ids=lambda column: f"{column.table.name}.{column.name}",
)
def test_name_derived_columns_fit_github_names(column: Column[str]) -> None:
    """Columns fed from repository names or feed codes hold full-length values."""
    assert isinstance(column.type, String)
    assert column.type.length is None or column.type.length >= _GITHUB_NAME_LIMIT
