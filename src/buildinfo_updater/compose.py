"""Compose file build-argument patching.

The file is edited textually at the positions PyYAML reports for the
two owned list items, so comments, key order and the quoting of every
other value survive untouched.
"""

from __future__ import annotations

import json
import re

import yaml

from buildinfo_updater.exceptions import DocumentError

_PLAIN_SAFE_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.=/+-]*")


def build_args(version: str, sha256: str) -> list[str]:
    """The owned ``build.args`` items, in positional order."""
    return [f"VERSION={version}", f"SHA256={sha256}"]


def patch_build_args(text: str, version: str, sha256: str, service: str = "factorio") -> str:
    """Overwrite ``services.<service>.build.args[0]`` and ``[1]``.

    Raises:
        DocumentError: if the document is not valid YAML or lacks an
            ``args`` list of at least two flow scalars at that path.
    """
    try:
        root = yaml.compose(text)
    except yaml.YAMLError as exc:
        raise DocumentError(f"Compose file is not valid YAML: {exc}") from exc

    path = ("services", service, "build", "args")
    node = root
    for key in path:
        node = _mapping_get(node, key)
        if node is None:
            raise DocumentError(f"Compose file lacks {'.'.join(path)}")

    if not isinstance(node, yaml.SequenceNode):
        raise DocumentError(f"{'.'.join(path)} must be a list")
    if len(node.value) < 2:
        raise DocumentError(f"{'.'.join(path)} needs at least two entries")

    items = node.value[:2]
    for item in items:
        if not isinstance(item, yaml.ScalarNode):
            raise DocumentError(f"{'.'.join(path)} entries must be scalars")
        # A block scalar's span runs into the next line's indentation.
        if item.style in ("|", ">"):
            raise DocumentError(f"{'.'.join(path)} entries must not be block scalars")

    # Splice from the back so earlier offsets stay valid.
    for item, value in sorted(
        zip(items, build_args(version, sha256)),
        key=lambda pair: pair[0].start_mark.index,
        reverse=True,
    ):
        start, end = item.start_mark.index, item.end_mark.index
        text = text[:start] + _render_scalar(value, item.style) + text[end:]
    return text


def _mapping_get(node: yaml.Node | None, key: str) -> yaml.Node | None:
    if not isinstance(node, yaml.MappingNode):
        return None
    for key_node, value_node in node.value:
        if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
            return value_node
    return None


def _render_scalar(value: str, style: str | None) -> str:
    if style == "'" and "'" not in value:
        return f"'{value}'"
    if style is None and _PLAIN_SAFE_RE.fullmatch(value):
        return value
    return json.dumps(value)
