"""Git publishing of an update.

All subprocess calls are confined to this module.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

from buildinfo_updater.exceptions import PublishError
from buildinfo_updater.logging import get_logger
from buildinfo_updater.reconciler import LatestVersions

log = get_logger("buildinfo_updater.publish")

LATEST_GIT_TAG = "latest"


def commit_message(product: str, versions: LatestVersions) -> str:
    return (
        f"Auto Update {product} to stable version: {versions.stable} "
        f"experimental version: {versions.experimental}"
    )


class GitPublisher:
    """Commits the managed files, moves the ``latest`` tag and pushes.

    Typical flow, one call to ``publish()``:
    1. configure the commit identity
    2. ``git add`` the managed files and commit
    3. ``git tag -f latest``
    4. ``git push`` and ``git push origin --tags -f``
    """

    def __init__(
        self,
        repo_dir: Path,
        user_name: str,
        user_email: str,
        product_name: str = "Factorio",
        push: bool = True,
    ) -> None:
        self._repo_dir = repo_dir
        self._user_name = user_name
        self._user_email = user_email
        self._product_name = product_name
        self._push = push

    async def publish(self, files: Sequence[Path], versions: LatestVersions) -> str:
        """Commit *files* and publish; returns the new commit SHA.

        Raises:
            PublishError: if any git command fails.
        """
        await self._git("config", "user.name", self._user_name)
        await self._git("config", "user.email", self._user_email)
        await self._git("add", "--", *(str(f) for f in files))
        await self._git("commit", "-m", commit_message(self._product_name, versions))
        await self._git("tag", "-f", LATEST_GIT_TAG)

        sha = (await self._git("rev-parse", "HEAD")).strip()
        log.info("update_committed", sha=sha[:12], stable=versions.stable)

        if self._push:
            await self._git("push")
            await self._git("push", "origin", "--tags", "-f")
            log.info("update_pushed", sha=sha[:12])
        else:
            log.info("update_push_skipped")
        return sha

    # ------------------------------------------------------------------
    # Subprocess helper
    # ------------------------------------------------------------------

    async def _git(self, *args: str) -> str:
        """Run a git command in the repository and return stdout."""
        cmd = ["git", *args]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._repo_dir,
            )
        except OSError as exc:
            raise PublishError(cmd, None, str(exc)) from exc

        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            log.warning(
                "git_cmd_failed",
                cmd=" ".join(cmd),
                returncode=proc.returncode,
                stderr=stderr.decode(errors="replace")[:500],
            )
            raise PublishError(cmd, proc.returncode, stderr.decode(errors="replace"))

        return stdout.decode()
