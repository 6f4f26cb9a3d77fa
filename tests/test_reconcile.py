"""Tests for matching hashed bundler outputs back to entries."""

from __future__ import annotations

from pathlib import Path

import pytest

from scratchwork.build.bundler import OutputDescriptor
from scratchwork.build.steps.reconcile import reconcile_outputs, strip_hash
from scratchwork.errors import ReconciliationError


def test_strip_hash_only_touches_last_segment() -> None:
    assert strip_hash("about/index-ab12cd34") == "about/index"
    assert strip_hash("my-blog/index-QX3Z7ABC") == "my-blog/index"
    assert strip_hash("index") == "index"


def test_nested_index_entry_is_matched(tmp_path: Path) -> None:
    src = tmp_path / "client-src"
    out = tmp_path / "client-compiled"
    entry_points = {
        "about/index": src / "about" / "index.tsx",
        "index": src / "index.tsx",
    }
    outputs = [
        OutputDescriptor("entry-point", out / "about" / "index-ab12cd34.js"),
        OutputDescriptor("entry-point", out / "index-ff00aa11.js"),
        OutputDescriptor("chunk", out / "chunks" / "chunk-deadbeef.js"),
        OutputDescriptor("entry-point", out / "index-ff00aa11.css"),
    ]
    resolved = reconcile_outputs(entry_points, src, outputs, out)
    assert resolved == {
        "about/index": out / "about" / "index-ab12cd34.js",
        "index": out / "index-ff00aa11.js",
    }


def test_non_index_entries_map_through_directories(tmp_path: Path) -> None:
    src = tmp_path / "client-src"
    out = tmp_path / "client-compiled"
    entry_points = {"guide/setup": src / "guide" / "setup" / "index.tsx"}
    outputs = [OutputDescriptor("entry-point", out / "guide" / "setup" / "index-1A2B3C4D.js")]
    assert reconcile_outputs(entry_points, src, outputs, out)["guide/setup"] == outputs[0].path


def test_missing_output_raises(tmp_path: Path) -> None:
    src = tmp_path / "client-src"
    out = tmp_path / "client-compiled"
    entry_points = {"index": src / "index.tsx", "about/index": src / "about" / "index.tsx"}
    outputs = [OutputDescriptor("entry-point", out / "index-ab12cd34.js")]
    with pytest.raises(ReconciliationError) as excinfo:
        reconcile_outputs(entry_points, src, outputs, out)
    assert "about/index" in str(excinfo.value)
