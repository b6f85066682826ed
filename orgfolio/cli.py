"""Command-line trigger for the category and project sync phases."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import os

import msgspec

from orgfolio.config import ConfigError, OrgfolioConfig
from orgfolio.errors import FetchError, SyncInProgressError
from orgfolio.logging import configure_logging, get_logger, log_error, log_warning
from orgfolio.projects.observability import SyncPhase
from orgfolio.projects.sync import run_sync_phase

logger = get_logger(__name__)

_PHASES: dict[str, tuple[SyncPhase, ...]] = {
    "categories": (SyncPhase.CATEGORIES,),
    "projects": (SyncPhase.PROJECTS,),
    "all": (SyncPhase.CATEGORIES, SyncPhase.PROJECTS),
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orgfolio-sync",
        description=__doc__,
    )
    parser.add_argument(
        "phase",
        choices=sorted(_PHASES),
        help="Sync phase to run; 'all' runs categories then projects",
    )
    parser.add_argument(
        "--database-url",
        default=os.environ.get("ORGFOLIO_DATABASE_URL"),
        help="SQLAlchemy database URL (default: $ORGFOLIO_DATABASE_URL)",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("ORGFOLIO_LOG_LEVEL", "INFO"),
        help="Log level (default: $ORGFOLIO_LOG_LEVEL or INFO)",
    )
    return parser


async def _run(
    database_url: str, phases: tuple[SyncPhase, ...], config: OrgfolioConfig
) -> None:
    for phase in phases:
        result = await run_sync_phase(database_url, phase, config=config)
        summary = {"phase": str(phase), **dataclasses.asdict(result)}
        print(msgspec.json.encode(summary).decode())


def main(argv: list[str] | None = None) -> int:
    """Run the requested sync phases and print one JSON summary per phase.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 on configuration or upstream failure,
        2 when another sync is already running.

    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _, invalid_level = configure_logging(args.log_level)
    if invalid_level:
        log_warning(logger, "Invalid log level %r, using INFO", args.log_level)

    if not args.database_url:
        parser.error("--database-url or ORGFOLIO_DATABASE_URL is required")

    try:
        config = OrgfolioConfig.from_env()
        asyncio.run(_run(args.database_url, _PHASES[args.phase], config))
    except ConfigError as exc:
        log_error(logger, "Invalid configuration: %s", exc)
        return 1
    except FetchError as exc:
        log_error(logger, "Sync aborted, committed data unchanged: %s", exc)
        return 1
    except SyncInProgressError as exc:
        log_error(logger, "%s", exc)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
