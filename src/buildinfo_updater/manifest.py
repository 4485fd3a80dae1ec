"""The version manifest (``buildinfo.json``).

The manifest is an ordered mapping from version string to a
``{"sha256": ..., "tags": [...]}`` record. ``Manifest`` is an immutable
value: every operation returns a new instance and never reorders
existing keys.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from buildinfo_updater.exceptions import ManifestError
from buildinfo_updater.fileio import atomic_write_text
from buildinfo_updater.tags import LATEST, STABLE, TagSet
from buildinfo_updater.versions import is_semver


@dataclass(frozen=True)
class ManifestEntry:
    """Checksum and tags of one released version."""

    sha256: str
    tags: TagSet

    def with_tags(self, tags: TagSet) -> ManifestEntry:
        return replace(self, tags=tags)

    def to_dict(self) -> dict[str, Any]:
        return {"sha256": self.sha256, "tags": self.tags.sorted()}


class Manifest(Mapping[str, ManifestEntry]):
    """Insertion-ordered, immutable mapping of version to entry."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, ManifestEntry] | None = None) -> None:
        self._entries: dict[str, ManifestEntry] = dict(entries or {})

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __getitem__(self, version: str) -> ManifestEntry:
        return self._entries[version]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented
        # Order is part of the persisted layout.
        return list(self._entries.items()) == list(other._entries.items())

    def __repr__(self) -> str:
        return f"Manifest({self._entries!r})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def holder(self, tag: str) -> str | None:
        """Return the version carrying *tag*, or None.

        Raises:
            ManifestError: if more than one entry carries it. Only used
                for the channel markers, which must be unique.
        """
        holders = [version for version, entry in self._entries.items() if tag in entry.tags]
        if len(holders) > 1:
            raise ManifestError(f"Tag {tag!r} is held by several versions: {', '.join(holders)}")
        return holders[0] if holders else None

    @property
    def stable_version(self) -> str | None:
        return self.holder(STABLE)

    @property
    def latest_version(self) -> str | None:
        return self.holder(LATEST)

    # ------------------------------------------------------------------
    # Transformations
    # ------------------------------------------------------------------

    def put(self, version: str, entry: ManifestEntry) -> Manifest:
        """Replace the entry for *version* in place, or append it."""
        entries = dict(self._entries)
        entries[version] = entry
        return Manifest(entries)

    def update_tags(self, version: str, fn: Callable[[TagSet], TagSet]) -> Manifest:
        """Apply *fn* to the tags of *version*; a missing version is a no-op."""
        if version not in self._entries:
            return self
        entry = self._entries[version]
        return self.put(version, entry.with_tags(fn(entry.tags)))

    def rename(self, old: str, new: str, entry: ManifestEntry) -> Manifest:
        """Move *old* to key *new* at the same position, storing *entry*.

        An existing, different entry keyed *new* is dropped.
        """
        if old not in self._entries:
            raise KeyError(old)
        entries: dict[str, ManifestEntry] = {}
        for version, current in self._entries.items():
            if version == old:
                entries[new] = entry
            elif version != new:
                entries[version] = current
        return Manifest(entries)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {version: entry.to_dict() for version, entry in self._entries.items()}

    @classmethod
    def from_dict(cls, data: Any) -> Manifest:
        """Build a manifest from decoded JSON.

        Raises:
            ManifestError: on any structural problem.
        """
        if not isinstance(data, dict):
            raise ManifestError("Manifest must be a JSON object")

        entries: dict[str, ManifestEntry] = {}
        for version, record in data.items():
            if not is_semver(version):
                raise ManifestError(f"Manifest key {version!r} is not a MAJOR.MINOR.PATCH version")
            if not isinstance(record, dict):
                raise ManifestError(f"Entry {version!r} must be an object")
            sha256 = record.get("sha256")
            tags = record.get("tags")
            if not isinstance(sha256, str):
                raise ManifestError(f"Entry {version!r} has no sha256 string")
            if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
                raise ManifestError(f"Entry {version!r} tags must be a list of strings")
            entries[version] = ManifestEntry(sha256=sha256, tags=TagSet(tags))

        manifest = cls(entries)
        # Surface duplicate channel markers at load time.
        manifest.holder(STABLE)
        manifest.holder(LATEST)
        return manifest

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @classmethod
    def loads(cls, raw: str) -> Manifest:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ManifestError(f"Manifest is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


def load_manifest(path: Path) -> Manifest:
    """Read the manifest at *path*.

    Raises:
        ManifestError: if the file is missing or malformed.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestError(f"Manifest not found: {path}") from exc
    return Manifest.loads(raw)


def save_manifest(path: Path, manifest: Manifest) -> None:
    atomic_write_text(path, manifest.dumps())
