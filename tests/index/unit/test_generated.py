"""Tests for generated and minified file detection."""

from __future__ import annotations

import pytest

from codegraph.index._internal.extraction import generated_reason, is_generated_file


class TestGeneratedReason:
    @pytest.mark.parametrize(
        ("path", "marker"),
        [
            ("dist/app.min.js", ".min."),
            ("static/vendor.bundle.js", ".bundle."),
            ("out/main.chunk.js", ".chunk."),
        ],
    )
    def test_name_markers(self, path: str, marker: str) -> None:
        assert generated_reason(path, "x", 1000) == f"name:{marker}"

    def test_long_first_line(self) -> None:
        content = "var a=" + "1" * 2000 + ";\nfunction f() {}\n"
        assert generated_reason("src/app.js", content, 1000) == "long_first_line"

    def test_threshold_is_exclusive(self) -> None:
        content = "x" * 1000
        assert generated_reason("a.py", content, 1000) is None
        assert generated_reason("a.py", content + "x", 1000) == "long_first_line"

    def test_bundler_preamble(self) -> None:
        content = "/******/ (function(modules) { // webpackBootstrap\n})();\n"
        assert generated_reason("app.js", content, 1000) == "preamble:webpackBootstrap"

    def test_preamble_outside_window_is_ignored(self) -> None:
        content = "\n" * 600 + "__webpack_require__\n"
        assert generated_reason("app.js", content, 1000) is None

    def test_regular_source(self) -> None:
        assert not is_generated_file("src/app.py", "def f():\n    pass\n")
