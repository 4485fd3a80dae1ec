"""Error taxonomy for the updater.

Unavailable sources and no-op runs are not errors and never raise;
everything here aborts the run before (or instead of) publishing.
"""


class UpdaterError(Exception):
    """Base class for fatal updater errors."""


class VersionError(UpdaterError, ValueError):
    """A version string is not canonical ``MAJOR.MINOR.PATCH``."""


class ManifestError(UpdaterError):
    """The manifest file is malformed."""


class ReconcileError(UpdaterError):
    """The observed channel versions form an unsupported combination."""


class ChecksumError(UpdaterError):
    """The checksum listing could not be retrieved."""


class ChecksumNotFoundError(ChecksumError):
    """No checksum is published for a version."""

    def __init__(self, version: str) -> None:
        super().__init__(f"No sha256 checksum published for version {version}")
        self.version = version


class DocumentError(UpdaterError):
    """A document lacks the region this updater owns."""


class PublishError(UpdaterError):
    """A git command failed."""

    def __init__(self, cmd: list[str], returncode: int | None, stderr: str = "") -> None:
        super().__init__(f"{' '.join(cmd)} exited with {returncode}: {stderr.strip()}")
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
