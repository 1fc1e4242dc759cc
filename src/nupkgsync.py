"""nupkgsync - copy the NuGet package closure of a source tree out of the local cache

    Returns:
        int: Exit code
"""
import asyncio
import logging
import os
import sys

from constants import ExitCodes
from common.logging_utils import (
    add_file_handler,
    configure_logging,
    extra_context,
    is_debug_enabled,
    set_console_level,
)
from args import parse_args
from cli_config import build_config, load_config_file
from errors import ConfigError
from sync.runner import run_sync


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    configure_logging(getattr(logging, str(args.LOG_LEVEL).upper(), logging.INFO))
    if getattr(args, "QUIET", False):
        set_console_level(logging.ERROR)
    if getattr(args, "LOG_FILE", None):
        add_file_handler(args.LOG_FILE)


def main(argv=None) -> int:
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        config = build_config(args, load_config_file(getattr(args, "CONFIG", None)))
    except ConfigError as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR.value

    if not os.path.isdir(config.source_dir):
        logger.error("Directory does not exist: %s", config.source_dir)
        return ExitCodes.FILE_ERROR.value

    logger.info("Syncing packages referenced under %s into %s", config.source_dir, config.destination_dir)
    try:
        report = asyncio.run(run_sync(config))
    except OSError as e:
        logger.error("Sync aborted: %s", e)
        return ExitCodes.FILE_ERROR.value

    if config.output:
        try:
            report.export_json(config.output)
        except OSError as e:
            logger.error("Couldn't write report to %s: %s", config.output, e)
            return ExitCodes.FILE_ERROR.value

    summary = ", ".join(f"{kind}={count}" for kind, count in report.counts().items() if count)
    logger.info("Finished: %s", summary or "nothing to do")

    if report.has_failures:
        return ExitCodes.SYNC_FAILED.value
    if config.error_on_warnings and report.has_warnings:
        return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


def cli_main() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli_main()
