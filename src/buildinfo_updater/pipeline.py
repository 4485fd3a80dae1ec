"""Update pipeline: fetch → compare → checksum → reconcile → render → write → publish.

Every step runs sequentially. Nothing is written until all three
documents have been rendered in memory, and a failure while writing or
publishing restores the original contents, so a failed run leaves the
working tree as it found it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from buildinfo_updater.compose import patch_build_args
from buildinfo_updater.config import Settings
from buildinfo_updater.exceptions import ChecksumNotFoundError, DocumentError, UpdaterError
from buildinfo_updater.fileio import atomic_write_text
from buildinfo_updater.logging import get_logger
from buildinfo_updater.manifest import load_manifest
from buildinfo_updater.readme import update_readme
from buildinfo_updater.reconciler import Checksums, LatestVersions, needs_update, reconcile

log = get_logger("buildinfo_updater.pipeline")


class VersionSource(Protocol):
    async def fetch_latest(self) -> LatestVersions | None: ...

    async def fetch_checksum(self, version: str) -> str | None: ...


class Publisher(Protocol):
    async def publish(self, files: list[Path], versions: LatestVersions) -> str: ...


class UpdateStatus(Enum):
    """Outcome of a pipeline run."""

    UNAVAILABLE = "unavailable"
    NO_UPDATE = "no_update"
    DRY_RUN = "dry_run"
    UPDATED = "updated"


@dataclass
class UpdateResult:
    """Result of a pipeline run."""

    status: UpdateStatus
    previous_stable: str | None = None
    previous_latest: str | None = None
    stable: str | None = None
    experimental: str | None = None
    commit_sha: str | None = None
    files_written: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "previous_stable": self.previous_stable,
            "previous_latest": self.previous_latest,
            "stable": self.stable,
            "experimental": self.experimental,
            "commit_sha": self.commit_sha,
            "files_written": self.files_written,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }


class UpdatePipeline:
    """Runs one update of the manifest, README and compose file."""

    def __init__(
        self,
        settings: Settings,
        source: VersionSource,
        publisher: Publisher | None,
        dry_run: bool = False,
    ) -> None:
        self._settings = settings
        self._source = source
        self._publisher = publisher
        self._dry_run = dry_run

    async def run(self) -> UpdateResult:
        """Execute the pipeline.

        The run is all-or-nothing: if writing or publishing fails, the
        files already written are restored to their original contents
        before the error propagates.

        Raises:
            UpdaterError: on any fatal condition.
            OSError: if a file cannot be written.
        """
        observed = await self._source.fetch_latest()
        if observed is None:
            log.info("update_skipped", reason="release source unavailable")
            return self._finish(UpdateResult(status=UpdateStatus.UNAVAILABLE))

        manifest_path = self._settings.resolve(self._settings.manifest_path)
        manifest = load_manifest(manifest_path)
        result = UpdateResult(
            status=UpdateStatus.NO_UPDATE,
            previous_stable=manifest.stable_version,
            previous_latest=manifest.latest_version,
            stable=observed.stable,
            experimental=observed.experimental,
        )

        if not needs_update(manifest, observed):
            log.info(
                "update_skipped",
                reason="up to date",
                stable=observed.stable,
                experimental=observed.experimental,
            )
            return self._finish(result)

        log.info(
            "update_available",
            stable=observed.stable,
            experimental=observed.experimental,
            previous_stable=result.previous_stable,
            previous_latest=result.previous_latest,
        )

        checksums = await self._resolve_checksums(observed)
        updated = reconcile(manifest, observed, checksums)

        readme_path = self._settings.resolve(self._settings.readme_path)
        compose_path = self._settings.resolve(self._settings.compose_path)
        originals = {
            manifest_path: _read_document(manifest_path),
            readme_path: _read_document(readme_path),
            compose_path: _read_document(compose_path),
        }
        outputs = {
            manifest_path: updated.dumps(),
            readme_path: update_readme(originals[readme_path], updated),
            compose_path: patch_build_args(
                originals[compose_path],
                observed.stable,
                checksums.stable,
                service=self._settings.compose_service,
            ),
        }

        if self._dry_run:
            log.info("update_dry_run", manifest=updated.to_dict())
            result.status = UpdateStatus.DRY_RUN
            return self._finish(result)

        written: list[Path] = []
        try:
            for path, content in outputs.items():
                atomic_write_text(path, content)
                written.append(path)
            log.info("update_files_written", files=[str(p) for p in written])

            if self._publisher is not None:
                result.commit_sha = await self._publisher.publish(
                    list(self._settings.managed_files), observed
                )
        except (OSError, UpdaterError) as exc:
            _restore(written, originals)
            log.warning(
                "update_rolled_back",
                error=str(exc),
                files=[str(p) for p in written],
            )
            raise

        result.files_written = [str(p) for p in written]
        result.status = UpdateStatus.UPDATED
        return self._finish(result)

    async def _resolve_checksums(self, observed: LatestVersions) -> Checksums:
        stable = await self._source.fetch_checksum(observed.stable)
        if not stable:
            raise ChecksumNotFoundError(observed.stable)
        experimental = await self._source.fetch_checksum(observed.experimental)
        if not experimental:
            raise ChecksumNotFoundError(observed.experimental)
        return Checksums(stable=stable, experimental=experimental)

    @staticmethod
    def _finish(result: UpdateResult) -> UpdateResult:
        result.completed_at = datetime.now().isoformat()
        return result


def _read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DocumentError(f"Document not found: {path}") from exc


def _restore(paths: list[Path], originals: dict[Path, str]) -> None:
    for path in paths:
        atomic_write_text(path, originals[path])
