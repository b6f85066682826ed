"""Structured sync events for category and project reconciliation.

Every event is a single log line tagged with a :class:`SyncEventType` value
followed by ``key=value`` pairs, suitable for parsing by log aggregators.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from orgfolio.errors import FetchError, SyncInProgressError
from orgfolio.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from orgfolio.categories.models import CategorySyncResult

    from .models import ProjectSyncResult

logger = get_logger(__name__)


class SyncEventType(enum.StrEnum):
    """Structured log event types for sync observability."""

    CATEGORIES_STARTED = "sync.categories.started"
    CATEGORIES_COMPLETED = "sync.categories.completed"
    CATEGORIES_FAILED = "sync.categories.failed"
    CATEGORIES_REJECTED = "sync.categories.rejected"
    PROJECTS_STARTED = "sync.projects.started"
    PROJECTS_COMPLETED = "sync.projects.completed"
    PROJECTS_FAILED = "sync.projects.failed"
    PROJECTS_REJECTED = "sync.projects.rejected"
    ITEM_SKIPPED = "sync.item.skipped"


class SyncPhase(enum.StrEnum):
    """Independently triggerable sync phases."""

    CATEGORIES = "categories"
    PROJECTS = "projects"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    UPSTREAM = "upstream"
    CONCURRENCY = "concurrency"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (FetchError, ErrorCategory.UPSTREAM),
    (SyncInProgressError, ErrorCategory.CONCURRENCY),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorise an exception for alert routing."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


@dataclasses.dataclass(frozen=True, slots=True)
class SyncRunContext:
    """Shared context for a single sync run."""

    phase: SyncPhase
    organization: str
    started_at: dt.datetime


_STARTED = {
    SyncPhase.CATEGORIES: SyncEventType.CATEGORIES_STARTED,
    SyncPhase.PROJECTS: SyncEventType.PROJECTS_STARTED,
}
_FAILED = {
    SyncPhase.CATEGORIES: SyncEventType.CATEGORIES_FAILED,
    SyncPhase.PROJECTS: SyncEventType.PROJECTS_FAILED,
}
_REJECTED = {
    SyncPhase.CATEGORIES: SyncEventType.CATEGORIES_REJECTED,
    SyncPhase.PROJECTS: SyncEventType.PROJECTS_REJECTED,
}


class SyncEventLogger:
    """Emit structured sync events through femtologging.

    Events are emitted at INFO for start and completion, WARNING for skipped
    items and rejected triggers, and ERROR for failed runs.
    """

    def log_run_started(self, context: SyncRunContext) -> None:
        """Log the start of a sync run."""
        log_info(
            logger,
            "[%s] organization=%s started_at=%s",
            _STARTED[context.phase],
            context.organization,
            context.started_at.isoformat(),
        )

    def log_categories_completed(
        self,
        context: SyncRunContext,
        result: CategorySyncResult,
        duration: dt.timedelta,
    ) -> None:
        """Log a successful category sync with its counts."""
        log_info(
            logger,
            "[%s] organization=%s duration_seconds=%.3f categories_loaded=%d "
            "categories_skipped=%d associations_kept=%d",
            SyncEventType.CATEGORIES_COMPLETED,
            context.organization,
            duration.total_seconds(),
            len(result.loaded),
            len(result.skipped),
            result.associations_kept,
        )

    def log_projects_completed(
        self,
        context: SyncRunContext,
        result: ProjectSyncResult,
        duration: dt.timedelta,
    ) -> None:
        """Log a successful project sync with its counts."""
        log_info(
            logger,
            "[%s] organization=%s duration_seconds=%.3f repositories_fetched=%d "
            "repositories_gated_out=%d projects_written=%d associations=%d "
            "malformed=%d",
            SyncEventType.PROJECTS_COMPLETED,
            context.organization,
            duration.total_seconds(),
            result.repositories_fetched,
            result.repositories_gated_out,
            result.projects_written,
            result.associations,
            len(result.malformed),
        )

    def log_run_failed(
        self,
        context: SyncRunContext,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a failed sync run with error categorisation."""
        log_error(
            logger,
            "[%s] organization=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            _FAILED[context.phase],
            context.organization,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_run_rejected(
        self, context: SyncRunContext, error: SyncInProgressError
    ) -> None:
        """Log a trigger turned away because another run holds the lock."""
        log_warning(
            logger,
            "[%s] organization=%s error_category=%s error_message=%s",
            _REJECTED[context.phase],
            context.organization,
            categorize_error(error),
            str(error),
        )

    def log_item_skipped(
        self, context: SyncRunContext, item: str, reason: str
    ) -> None:
        """Log an item excluded from a run without failing it."""
        log_warning(
            logger,
            "[%s] phase=%s organization=%s item=%s reason=%s",
            SyncEventType.ITEM_SKIPPED,
            context.phase,
            context.organization,
            item,
            reason,
        )


__all__ = [
    "ErrorCategory",
    "SyncEventLogger",
    "SyncEventType",
    "SyncPhase",
    "SyncRunContext",
    "categorize_error",
]
