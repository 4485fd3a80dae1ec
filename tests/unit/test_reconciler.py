"""Tests for manifest tag reconciliation."""

from __future__ import annotations

import pytest

from buildinfo_updater.exceptions import ManifestError, ReconcileError, VersionError
from buildinfo_updater.manifest import Manifest, ManifestEntry
from buildinfo_updater.reconciler import (
    Checksums,
    LatestVersions,
    needs_update,
    reconcile,
)
from buildinfo_updater.tags import TagSet

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _manifest(data: dict[str, tuple[str, list[str]]]) -> Manifest:
    return Manifest.from_dict(
        {version: {"sha256": sha, "tags": tags} for version, (sha, tags) in data.items()}
    )


def _single_stable() -> Manifest:
    return _manifest({"1.2.3": ("old", ["stable", "latest", "1", "1.2", "1.2.3"])})


def _run(
    manifest: Manifest,
    stable: str,
    experimental: str | None = None,
    stable_sha: str = "abc",
    experimental_sha: str = "def",
) -> Manifest:
    observed = LatestVersions(stable=stable, experimental=experimental or stable)
    checksums = Checksums(
        stable=stable_sha,
        experimental=experimental_sha if experimental else stable_sha,
    )
    return reconcile(manifest, observed, checksums)


def _tags(manifest: Manifest, version: str) -> set[str]:
    return set(manifest[version].tags)


def _assert_single_holders(manifest: Manifest) -> None:
    for tag in ("stable", "latest"):
        holders = [v for v, entry in manifest.items() if tag in entry.tags]
        assert len(holders) == 1, f"{tag} held by {holders}"


# ---------------------------------------------------------------------------
# needs_update
# ---------------------------------------------------------------------------


class TestNeedsUpdate:
    """Tests for the idempotence guard."""

    def test_unchanged_versions_need_no_update(self) -> None:
        manifest = _single_stable()
        assert needs_update(manifest, LatestVersions("1.2.3", "1.2.3")) is False

    def test_new_stable_needs_update(self) -> None:
        manifest = _single_stable()
        assert needs_update(manifest, LatestVersions("1.2.4", "1.2.4")) is True

    def test_new_experimental_needs_update(self) -> None:
        manifest = _single_stable()
        assert needs_update(manifest, LatestVersions("1.2.3", "1.3.0")) is True

    def test_experimental_tracked_as_latest(self) -> None:
        manifest = _manifest(
            {
                "1.1.110": ("a", ["stable", "stable-1.1.110", "1", "1.1", "1.1.110"]),
                "2.0.7": ("b", ["latest", "2", "2.0", "2.0.7"]),
            }
        )
        assert needs_update(manifest, LatestVersions("1.1.110", "2.0.7")) is False

    def test_empty_manifest_needs_update(self) -> None:
        assert needs_update(Manifest(), LatestVersions("1.0.0", "1.0.0")) is True


# ---------------------------------------------------------------------------
# Stable channel
# ---------------------------------------------------------------------------


class TestStablePatchRelease:
    """A new patch on the tracked major.minor line renames the stable entry."""

    def test_patch_bump_renames_entry(self) -> None:
        result = _run(_single_stable(), "1.2.4")

        assert list(result) == ["1.2.4"]
        assert result["1.2.4"].sha256 == "abc"
        assert _tags(result, "1.2.4") == {"stable", "latest", "stable-1.2.4", "1", "1.2", "1.2.4"}

    def test_patch_bump_replaces_lineage_tag(self) -> None:
        manifest = _manifest(
            {"1.2.3": ("old", ["stable", "latest", "stable-1.2.3", "1", "1.2", "1.2.3"])}
        )
        result = _run(manifest, "1.2.4")
        assert "stable-1.2.3" not in result["1.2.4"].tags
        assert "1.2.3" not in result["1.2.4"].tags

    def test_patch_bump_keeps_position(self) -> None:
        manifest = _manifest(
            {
                "1.0.5": ("x", ["stable-1.0.5", "1.0", "1.0.5"]),
                "1.1.3": ("y", ["stable", "latest", "stable-1.1.3", "1", "1.1", "1.1.3"]),
                "2.0.1": ("z", ["2", "2.0", "2.0.1"]),
            }
        )
        result = _run(manifest, "1.1.4", "2.0.2")
        assert list(result)[:2] == ["1.0.5", "1.1.4"]

    def test_patch_bump_onto_former_experimental_entry(self) -> None:
        manifest = _manifest(
            {
                "1.1.100": ("a", ["stable", "stable-1.1.100", "1", "1.1", "1.1.100"]),
                "1.1.101": ("b", ["latest", "1.1.101"]),
            }
        )
        result = _run(manifest, "1.1.101", stable_sha="b")

        assert list(result) == ["1.1.101"]
        assert _tags(result, "1.1.101") == {
            "latest",
            "stable",
            "stable-1.1.101",
            "1",
            "1.1",
            "1.1.101",
        }


class TestStableNewLine:
    """A new major.minor line demotes the previous stable entry."""

    def test_minor_bump_demotes_and_appends(self) -> None:
        result = _run(_single_stable(), "1.3.0")

        assert list(result) == ["1.2.3", "1.3.0"]
        assert _tags(result, "1.2.3") == {"1.2", "1.2.3"}
        assert result["1.2.3"].sha256 == "old"
        assert _tags(result, "1.3.0") == {"latest", "stable", "stable-1.3.0", "1", "1.3", "1.3.0"}
        assert result["1.3.0"].sha256 == "abc"

    def test_demotion_keeps_lineage_tag(self) -> None:
        manifest = _manifest(
            {"1.2.3": ("old", ["stable", "latest", "stable-1.2.3", "1", "1.2", "1.2.3"])}
        )
        result = _run(manifest, "1.3.0")
        assert _tags(result, "1.2.3") == {"stable-1.2.3", "1.2", "1.2.3"}

    def test_major_bump_keeps_previous_major_tag(self) -> None:
        result = _run(_single_stable(), "2.0.0")
        assert _tags(result, "1.2.3") == {"1", "1.2", "1.2.3"}
        assert _tags(result, "2.0.0") == {"latest", "stable", "stable-2.0.0", "2", "2.0", "2.0.0"}

    def test_stable_promotes_existing_experimental_in_place(self) -> None:
        manifest = _manifest(
            {
                "1.1.110": ("a", ["stable", "stable-1.1.110", "1", "1.1", "1.1.110"]),
                "2.0.7": ("b", ["latest", "2", "2.0", "2.0.7"]),
            }
        )
        result = _run(manifest, "2.0.7", stable_sha="b")

        assert list(result) == ["1.1.110", "2.0.7"]
        assert _tags(result, "1.1.110") == {"stable-1.1.110", "1", "1.1", "1.1.110"}
        assert _tags(result, "2.0.7") == {"latest", "stable", "stable-2.0.7", "2", "2.0", "2.0.7"}

    def test_bootstrap_from_empty_manifest(self) -> None:
        result = _run(Manifest(), "1.0.0")
        assert list(result) == ["1.0.0"]
        assert _tags(result, "1.0.0") == {"latest", "stable", "stable-1.0.0", "1", "1.0", "1.0.0"}


# ---------------------------------------------------------------------------
# Experimental channel
# ---------------------------------------------------------------------------


class TestExperimental:
    """A separate experimental build takes over the latest tag."""

    def test_experimental_on_separate_line(self) -> None:
        result = _run(_single_stable(), "1.3.0", "2.0.0")

        assert "latest" not in result["1.3.0"].tags
        assert "stable" in result["1.3.0"].tags
        assert _tags(result, "2.0.0") == {"latest", "2", "2.0", "2.0.0"}
        assert result["2.0.0"].sha256 == "def"

    def test_experimental_on_stable_line(self) -> None:
        result = _run(_single_stable(), "1.3.0", "1.3.5")
        assert _tags(result, "1.3.5") == {"latest", "1.3.5"}
        assert "latest" not in result["1.3.0"].tags

    def test_experimental_appended_last(self) -> None:
        result = _run(_single_stable(), "1.3.0", "2.0.0")
        assert list(result) == ["1.2.3", "1.3.0", "2.0.0"]

    def test_previous_experimental_loses_latest(self) -> None:
        manifest = _manifest(
            {
                "1.1.110": ("a", ["stable", "stable-1.1.110", "1", "1.1", "1.1.110"]),
                "2.0.7": ("b", ["latest", "2", "2.0", "2.0.7"]),
            }
        )
        result = _run(manifest, "1.1.110", "2.0.8", stable_sha="a")

        assert _tags(result, "2.0.7") == {"2", "2.0", "2.0.7"}
        assert _tags(result, "2.0.8") == {"latest", "2", "2.0", "2.0.8"}
        assert _tags(result, "1.1.110") == {
            "stable",
            "stable-1.1.110",
            "1",
            "1.1",
            "1.1.110",
        }

    def test_existing_experimental_updated_in_place(self) -> None:
        manifest = _manifest(
            {
                "1.1.109": ("a", ["stable", "stable-1.1.109", "1", "1.1", "1.1.109"]),
                "2.0.7": ("b", ["latest", "2", "2.0", "2.0.7"]),
            }
        )
        result = _run(manifest, "1.1.110", "2.0.7", stable_sha="c", experimental_sha="b2")

        assert list(result) == ["1.1.110", "2.0.7"]
        assert result["2.0.7"].sha256 == "b2"
        assert _tags(result, "2.0.7") == {"latest", "2", "2.0", "2.0.7"}

    def test_experimental_equal_to_stable_leaves_latest_on_stable(self) -> None:
        result = _run(_single_stable(), "1.3.0", "1.3.0")
        assert result.latest_version == "1.3.0"
        assert result.stable_version == "1.3.0"

    def test_experimental_older_than_stable_is_rejected(self) -> None:
        with pytest.raises(ReconcileError):
            _run(_single_stable(), "1.3.0", "1.2.9")


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestInvariants:
    """Channel markers stay unique and reruns are no-ops."""

    @pytest.mark.parametrize(
        ("stable", "experimental"),
        [
            ("1.2.4", None),
            ("1.3.0", None),
            ("1.3.0", "2.0.0"),
            ("1.3.0", "1.3.5"),
            ("1.2.4", "1.2.5"),
        ],
    )
    def test_single_stable_and_latest_holder(self, stable: str, experimental: str | None) -> None:
        result = _run(_single_stable(), stable, experimental)
        _assert_single_holders(result)

    def test_sequence_of_releases(self) -> None:
        manifest = _single_stable()
        for stable, experimental in [
            ("1.2.4", "1.3.0"),
            ("1.2.4", "1.3.1"),
            ("1.3.1", "1.3.1"),
            ("1.3.2", "2.0.0"),
            ("2.0.0", "2.0.0"),
        ]:
            manifest = _run(manifest, stable, experimental)
            _assert_single_holders(manifest)
            assert manifest.stable_version == stable
            assert manifest.latest_version == experimental

    def test_second_run_is_noop(self) -> None:
        observed = LatestVersions("1.3.0", "2.0.0")
        once = reconcile(_single_stable(), observed, Checksums("abc", "def"))
        assert needs_update(once, observed) is False

    def test_input_manifest_is_not_mutated(self) -> None:
        manifest = _single_stable()
        before = manifest.dumps()
        _run(manifest, "1.3.0", "2.0.0")
        assert manifest.dumps() == before


class TestInvalidInput:
    """Malformed input fails fast."""

    def test_unparseable_stable_version(self) -> None:
        with pytest.raises(VersionError):
            _run(_single_stable(), "1.3")

    def test_duplicate_stable_holders(self) -> None:
        manifest = Manifest(
            {
                "1.0.0": ManifestEntry(sha256="a", tags=TagSet(["stable", "1.0.0"])),
                "1.1.0": ManifestEntry(sha256="b", tags=TagSet(["stable", "1.1.0"])),
            }
        )
        with pytest.raises(ManifestError):
            _run(manifest, "1.2.0")
