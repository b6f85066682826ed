"""orgfolio: GitHub organisation project catalogue.

orgfolio discovers an organisation's repositories, keeps the ones whose
names follow the ``{batch}-{category}-{title}`` convention and match a
curated category's filters, and serves them as a browsable project
catalogue.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
