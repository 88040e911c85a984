"""cargo-prefetch - populate the local Cargo cache for offline builds.

Selects crates (top downloads, top dependencies, explicit names or a
Cargo.lock), resolves each to a concrete version, skips what the cache
already holds and downloads the rest with bounded concurrency.

    Returns:
        int: Exit code
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from args import parse_args
from cache.store import CacheStore
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from config import Settings, load_settings
from constants import ExitCodes
from errors import ConfigurationError, InvalidCountError, SelectionError
from fetch.executor import FetchExecutor
from planning import PlanBuilder
from registry import RegistryClient
from report import Reporter, export_csv, export_json
from selection import Selection, Selector, selection_from_args
from versioning.models import DownloadPlan, FetchOutcome, ResolutionFailure, SelectionIssue
from versioning.resolver import Resolver

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Everything one invocation produced, for reporting and exit status."""
    plan: DownloadPlan
    issues: List[SelectionIssue] = field(default_factory=list)
    failures: List[ResolutionFailure] = field(default_factory=list)
    outcomes: Optional[List[FetchOutcome]] = None

    @property
    def has_failures(self) -> bool:
        if self.issues or self.failures:
            return True
        return any(not o.ok for o in self.outcomes or [])

    @property
    def exit_code(self) -> int:
        return ExitCodes.FAILURES.value if self.has_failures else ExitCodes.SUCCESS.value


def _install_cancel_handlers(cancel_event: threading.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # Windows event loops and non-main threads cannot install handlers
            return


async def _download(registry, executor: FetchExecutor, plan: DownloadPlan,
                    handle_signals: bool) -> List[FetchOutcome]:
    if handle_signals:
        _install_cancel_handlers(executor.cancel_event)
    async with registry:
        return await executor.execute(plan)


def run(
    selection: Selection,
    settings: Settings,
    registry,
    cache,
    *,
    list_only: bool = False,
    reporter: Optional[Reporter] = None,
    cancel_event: Optional[threading.Event] = None,
    handle_signals: bool = False,
) -> RunResult:
    """Run the selection -> resolution -> plan -> fetch pipeline.

    Raises:
        SelectionError: the selection source itself failed (e.g. the top
            crates listing could not be fetched).
    """
    reporter = reporter or Reporter()

    selected = Selector(registry).select(selection)
    resolution = Resolver(registry, jobs=settings.jobs).resolve_all(selected.refs)
    plan = PlanBuilder(cache).build(resolution.resolved)
    result = RunResult(plan=plan, issues=selected.issues, failures=resolution.failures)

    reporter.errors(result.issues, result.failures)

    if list_only:
        reporter.plan(plan)
        return result

    if plan.entries:
        executor = FetchExecutor(
            registry,
            cache,
            workers=settings.jobs,
            retries=settings.retries,
            backoff_base=settings.backoff_base,
            backoff_max=settings.backoff_max,
            cancel_event=cancel_event,
        )
        result.outcomes = asyncio.run(_download(registry, executor, plan, handle_signals))
    else:
        logger.info("Nothing to download.")
        result.outcomes = []

    reporter.outcomes(result.outcomes, plan.already_cached)
    return result


def _output_format(path: str, fmt: Optional[str]) -> str:
    if fmt:
        return fmt
    return "csv" if path.lower().endswith(".csv") else "json"


def export(args, result: RunResult) -> None:
    """Write the --output file, if requested."""
    path = getattr(args, "OUTPUT", None)
    if not path:
        return
    writer = export_csv if _output_format(path, getattr(args, "OUTPUT_FORMAT", None)) == "csv" else export_json
    try:
        writer(path, plan=result.plan, outcomes=result.outcomes)
    except OSError as e:
        logger.error("Output file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FAILURES.value)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    level = args.LOG_LEVEL or ("DEBUG" if args.VERBOSE else None)
    configure_logging(level=level, log_file=args.LOG_FILE)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        settings = load_settings(args)
        selection = selection_from_args(args)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.CONFIG_ERROR.value)

    registry = RegistryClient.from_settings(settings)
    cache = CacheStore(settings.resolved_cache_dir)
    reporter = Reporter(verbose=args.VERBOSE, quiet=args.QUIET)
    logger.debug("Using cache directory %s", cache.root)

    try:
        result = run(
            selection,
            settings,
            registry,
            cache,
            list_only=args.LIST,
            reporter=reporter,
            handle_signals=True,
        )
    except InvalidCountError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.CONFIG_ERROR.value)
    except SelectionError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(ExitCodes.INTERRUPTED.value)

    export(args, result)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="main",
                outcome="failures" if result.has_failures else "success"
            )
        )
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
