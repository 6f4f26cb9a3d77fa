"""Map hashed client bundle outputs back to content entries."""

from __future__ import annotations

import os
import posixpath
import re
from pathlib import Path
from typing import Dict, Iterable, Mapping

from ...errors import ReconciliationError
from ...models import strip_extension
from ..bundler import OutputDescriptor
from ..types import BuildState, BuildStep

# esbuild hashes are uppercase base32; other bundlers emit lowercase hex.
_HASH_SUFFIX_RE = re.compile(r"-[A-Za-z0-9]+$")


def _relative(path: Path, root: Path) -> str:
    return Path(os.path.relpath(os.path.abspath(path), os.path.abspath(root))).as_posix()


def strip_hash(name: str) -> str:
    """Drop a trailing ``-<hash>`` from the last segment of ``name``."""
    head, tail = posixpath.split(name)
    tail = _HASH_SUFFIX_RE.sub("", tail)
    return posixpath.join(head, tail) if head else tail


def reconcile_outputs(
    entry_points: Mapping[str, Path],
    source_root: Path,
    outputs: Iterable[OutputDescriptor],
    output_root: Path,
) -> Dict[str, Path]:
    """Return ``entry name -> output path`` for every entry.

    ``entry_points`` maps entry names to generated entry files under
    ``source_root``; the bundler mirrors that layout under ``output_root``.
    """
    reverse = {
        strip_extension(_relative(path, source_root)): name for name, path in entry_points.items()
    }
    resolved: Dict[str, Path] = {}
    for output in outputs:
        if output.kind != "entry-point" or not str(output.path).endswith(".js"):
            continue
        base = strip_hash(_relative(output.path, output_root)[: -len(".js")])
        name = reverse.get(base)
        if name is not None:
            resolved[name] = Path(output.path)

    missing = sorted(name for name in entry_points if name not in resolved)
    if missing:
        raise ReconciliationError(
            "Could not find compiled JavaScript for: "
            + ", ".join(missing)
            + ". The bundler produced: "
            + (", ".join(str(output.path) for output in outputs) or "nothing")
        )
    return resolved


class ReconcileStep(BuildStep):
    name = "reconcile"
    description = "Match client bundle outputs to entries"

    async def execute(self, workspace, state: BuildState) -> None:
        outputs = state.client_bundle.outputs if state.client_bundle else []
        state.js_outputs = reconcile_outputs(
            state.client_entry_points,
            workspace.client_src_dir,
            outputs,
            workspace.client_compiled_dir,
        )
