"""Tag reconciliation for newly observed stable/experimental releases.

Pure functions over ``Manifest`` values; no I/O happens here.

Channel policy:

* the ``stable`` entry carries ``latest``, ``stable``, ``stable-<v>``, the
  bare major, ``major.minor`` and ``v``;
* a patch release on the current stable line renames the stable entry;
* a new stable line demotes the previous stable entry and appends a new one;
* a separate experimental build takes ``latest`` away from stable, and only
  gets the line tags when it is on a different ``major.minor`` line.
"""

from __future__ import annotations

from dataclasses import dataclass

from buildinfo_updater.exceptions import ReconcileError
from buildinfo_updater.logging import get_logger
from buildinfo_updater.manifest import Manifest, ManifestEntry
from buildinfo_updater.tags import LATEST, STABLE, TagSet, stable_lineage
from buildinfo_updater.versions import Version

log = get_logger("buildinfo_updater.reconciler")


@dataclass(frozen=True)
class LatestVersions:
    """Versions currently published on each channel."""

    stable: str
    experimental: str

    @property
    def has_separate_experimental(self) -> bool:
        return self.experimental != self.stable


@dataclass(frozen=True)
class Checksums:
    """Published sha256 of each channel's artifact."""

    stable: str
    experimental: str


def needs_update(manifest: Manifest, observed: LatestVersions) -> bool:
    """Return False when the manifest already reflects *observed*."""
    return not (
        manifest.stable_version == observed.stable
        and manifest.latest_version == observed.experimental
    )


def stable_tags(version: Version) -> TagSet:
    v = str(version)
    return TagSet((LATEST, STABLE, stable_lineage(v), version.major_tag, version.short, v))


def reconcile(manifest: Manifest, observed: LatestVersions, checksums: Checksums) -> Manifest:
    """Return *manifest* updated for the *observed* channel versions.

    Raises:
        VersionError: if a version string is not canonical.
        ManifestError: if a channel marker is held by several entries.
        ReconcileError: if the experimental build is older than stable.
    """
    new_stable = Version.parse(observed.stable)
    new_experimental = Version.parse(observed.experimental)
    if new_experimental < new_stable:
        raise ReconcileError(
            f"Experimental {new_experimental} is older than stable {new_stable}"
        )

    current_stable = manifest.stable_version
    current_latest = manifest.latest_version

    if current_latest is not None:
        manifest = manifest.update_tags(current_latest, lambda tags: tags.remove(LATEST))

    manifest = _reconcile_stable(manifest, current_stable, new_stable, checksums.stable)

    if observed.has_separate_experimental:
        manifest = _reconcile_experimental(
            manifest, new_stable, new_experimental, checksums.experimental
        )

    log.debug(
        "manifest_reconciled",
        stable=str(new_stable),
        experimental=str(new_experimental),
        previous_stable=current_stable,
        previous_latest=current_latest,
    )
    return manifest


def _reconcile_stable(
    manifest: Manifest,
    current: str | None,
    new: Version,
    sha256: str,
) -> Manifest:
    new_str = str(new)

    if current is not None and Version.parse(current).same_line(new):
        # Patch release on the tracked line: the entry follows the version.
        tags = (
            manifest[current]
            .tags.replace(current, new_str)
            .replace(stable_lineage(current), stable_lineage(new_str))
        )
        entry = ManifestEntry(sha256=sha256, tags=tags.union(stable_tags(new)))
        log.info("stable_patch_release", previous=current, version=new_str)
        return manifest.rename(current, new_str, entry)

    if current is not None:
        manifest = manifest.update_tags(
            current, lambda tags: tags.remove(LATEST, STABLE, new.major_tag)
        )
        log.info("stable_line_demoted", previous=current, version=new_str)

    return manifest.put(new_str, ManifestEntry(sha256=sha256, tags=stable_tags(new)))


def _reconcile_experimental(
    manifest: Manifest,
    stable: Version,
    experimental: Version,
    sha256: str,
) -> Manifest:
    manifest = manifest.update_tags(str(stable), lambda tags: tags.remove(LATEST))

    v = str(experimental)
    if experimental.same_line(stable):
        tags = TagSet((LATEST, v))
    else:
        tags = TagSet((LATEST, experimental.major_tag, experimental.short, v))

    log.info("experimental_release", version=v, stable=str(stable))
    return manifest.put(v, ManifestEntry(sha256=sha256, tags=tags))
