"""Command-line entry point for the buildinfo updater.

Exit codes: 0 when the run completed (including "nothing to do" and an
unreachable release API), 1 on any fatal updater error.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from buildinfo_updater.config import Settings, get_settings
from buildinfo_updater.exceptions import UpdaterError
from buildinfo_updater.logging import get_logger, setup_logging
from buildinfo_updater.pipeline import UpdatePipeline, UpdateResult
from buildinfo_updater.publish import GitPublisher
from buildinfo_updater.source import ReleaseSource


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="buildinfo-updater",
        description="Track new headless releases and update buildinfo.json, README and compose.",
    )
    parser.add_argument("--repo-dir", type=Path, help="Git working tree to update")
    parser.add_argument(
        "--no-push", action="store_true", help="Commit and tag locally without pushing"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute the new manifest and log it; write and commit nothing",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Apply command-line overrides on top of the environment settings."""
    overrides: dict[str, object] = {}
    if args.repo_dir is not None:
        overrides["repo_dir"] = args.repo_dir
    if args.no_push:
        overrides["push"] = False
    return get_settings().model_copy(update=overrides)


async def run(settings: Settings, dry_run: bool = False) -> UpdateResult:
    source = ReleaseSource(
        release_api_url=settings.release_api_url,
        checksum_url=settings.checksum_url,
        filename_prefixes=settings.checksum_filename_prefixes,
    )
    publisher = GitPublisher(
        repo_dir=settings.repo_dir,
        user_name=settings.git_user_name,
        user_email=settings.git_user_email,
        product_name=settings.product_name,
        push=settings.push,
    )
    pipeline = UpdatePipeline(settings, source, publisher, dry_run=dry_run)
    return await pipeline.run()


def main(argv: list[str] | None = None) -> int:
    """Run one update and return the process exit code."""
    args = parse_args(argv)
    setup_logging(level=args.log_level)
    log = get_logger("buildinfo_updater.main")

    settings = build_settings(args)
    log.info("updater_starting", repo_dir=str(settings.repo_dir), dry_run=args.dry_run)

    try:
        result = asyncio.run(run(settings, dry_run=args.dry_run))
    except UpdaterError as exc:
        log.error("updater_failed", error=str(exc), error_type=type(exc).__name__)
        return 1

    log.info("updater_finished", **result.to_dict())
    return 0


if __name__ == "__main__":
    sys.exit(main())
