"""README tag list rendering."""

from __future__ import annotations

from buildinfo_updater.exceptions import DocumentError
from buildinfo_updater.manifest import Manifest

START_MARKER = "<!-- start autogeneration tags -->"
END_MARKER = "<!-- end autogeneration tags -->"


def render_tag_list(manifest: Manifest) -> str:
    """Render one bullet per version, most recently added first.

    Example line: ``* `1`, `1.1`, `1.1.110`, `latest`, `stable```
    """
    lines = []
    for version in reversed(list(manifest)):
        tags = ", ".join(f"`{tag}`" for tag in manifest[version].tags.sorted())
        lines.append(f"* {tags}")
    return "\n".join(lines)


def replace_marker_region(text: str, body: str) -> str:
    """Replace the text strictly between the start and end markers.

    Raises:
        DocumentError: if the markers are missing or out of order.
    """
    start = text.find(START_MARKER)
    if start == -1:
        raise DocumentError(f"README lacks {START_MARKER!r}")
    region_start = start + len(START_MARKER)
    end = text.find(END_MARKER, region_start)
    if end == -1:
        raise DocumentError(f"README lacks {END_MARKER!r} after the start marker")
    return f"{text[:region_start]}\n{body}\n{text[end:]}"


def update_readme(text: str, manifest: Manifest) -> str:
    return replace_marker_region(text, render_tag_list(manifest))
