"""Release metadata source.

Queries the product's release API for the latest stable/experimental
headless versions and the published sha256 listing. The release API is
allowed to be unavailable (the run is skipped); the checksum listing is
not, since an update is known to exist by the time it is needed.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

import httpx

from buildinfo_updater.exceptions import ChecksumError
from buildinfo_updater.logging import get_logger
from buildinfo_updater.reconciler import LatestVersions
from buildinfo_updater.versions import is_semver

log = get_logger("buildinfo_updater.source")


def parse_checksum_listing(text: str) -> dict[str, str]:
    """Parse ``<sha256>  <filename>`` lines into a filename -> checksum map.

    Blank and malformed lines are skipped. A leading ``*`` (binary mode
    marker of ``sha256sum``) is stripped from filenames.
    """
    checksums: dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split(None, 1)
        if len(parts) != 2:
            continue
        digest, filename = parts
        checksums[filename.strip().lstrip("*")] = digest
    return checksums


class ReleaseSource:
    """HTTP client for release versions and checksums."""

    def __init__(
        self,
        release_api_url: str,
        checksum_url: str,
        filename_prefixes: Sequence[str],
    ) -> None:
        self._release_api_url = release_api_url
        self._checksum_url = checksum_url
        self._filename_patterns = [
            re.compile(re.escape(prefix) + r"(?P<version>.+)\.tar\.xz")
            for prefix in filename_prefixes
        ]
        self._checksums: dict[str, str] | None = None

    async def fetch_latest(self) -> LatestVersions | None:
        """Return the latest headless versions, or None if unavailable.

        Unreachable endpoints, error statuses and malformed payloads all
        yield None; callers treat that as "no update".
        """
        try:
            async with httpx.AsyncClient(timeout=None, follow_redirects=True) as client:
                resp = await client.get(self._release_api_url)
        except httpx.RequestError as exc:
            log.warning("release_api_unreachable", url=self._release_api_url, error=str(exc))
            return None

        if resp.status_code != 200:
            log.warning("release_api_error", status=resp.status_code)
            return None

        try:
            data = resp.json()
        except ValueError:
            log.warning("release_api_malformed", reason="invalid json")
            return None

        stable = _headless(data, "stable")
        experimental = _headless(data, "experimental")
        if stable is None or experimental is None:
            log.warning(
                "release_api_malformed",
                reason="missing or invalid headless version",
                stable=stable,
                experimental=experimental,
            )
            return None

        log.debug("release_api_versions", stable=stable, experimental=experimental)
        return LatestVersions(stable=stable, experimental=experimental)

    async def fetch_checksums(self) -> dict[str, str]:
        """Return the published filename -> sha256 listing.

        Raises:
            ChecksumError: if the listing cannot be retrieved.
        """
        if self._checksums is not None:
            return self._checksums

        try:
            async with httpx.AsyncClient(timeout=None, follow_redirects=True) as client:
                resp = await client.get(self._checksum_url)
        except httpx.RequestError as exc:
            raise ChecksumError(f"Checksum listing unreachable: {exc}") from exc

        if resp.status_code != 200:
            raise ChecksumError(f"Checksum listing returned HTTP {resp.status_code}")

        self._checksums = parse_checksum_listing(resp.text)
        log.debug("checksum_listing_fetched", files=len(self._checksums))
        return self._checksums

    async def fetch_checksum(self, version: str) -> str | None:
        """Return the checksum of the artifact for exactly *version*.

        Returns None when no artifact of that version is listed yet.
        """
        checksums = await self.fetch_checksums()
        for filename, digest in checksums.items():
            for pattern in self._filename_patterns:
                m = pattern.fullmatch(filename)
                if m is not None and m.group("version") == version and digest:
                    return digest
        return None


def _headless(data: object, channel: str) -> str | None:
    if not isinstance(data, dict):
        return None
    release = data.get(channel)
    if not isinstance(release, dict):
        return None
    version = release.get("headless")
    if not isinstance(version, str) or not is_semver(version):
        return None
    return version
