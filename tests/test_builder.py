"""Tests for merge orchestration."""

import json
import tempfile
from pathlib import Path

import pytest

from scanner.builder import OUTPUT_LANGUAGE, format_header, merge_from, probe_source_file, visit
from scanner.errors import ConfigurationNotFound, MergeError
from scanner.syntax import parse
from tsconfig.model import CompilerOptions


def _write(root: Path, relative: str, content: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _project(root: Path, files: dict, config=None) -> None:
    _write(root, "tsconfig.json", json.dumps(config if config is not None else {}))
    for relative, content in files.items():
        _write(root, relative, content)


def _header_positions(text: str, paths) -> list:
    return [text.index(format_header(path)) for path in paths]


class TestMergeScenarios:
    """End-to-end merges over small projects."""

    def test_local_and_external_imports(self):
        """Test that local files merge in order and packages are skipped."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {
                "src/a.ts": "import { f } from './b'; import 'left-pad';\nf();\n",
                "src/b.ts": "export function f() {}\n",
                "node_modules/left-pad/package.json": json.dumps({"main": "index.js"}),
                "node_modules/left-pad/index.d.ts": "export {};\n",
            })
            a = root / "src" / "a.ts"
            b = root / "src" / "b.ts"

            result = merge_from(a)

            assert result.text == (
                format_header(a) + " \nf();\n"
                + "\n\n" + format_header(b) + "export function f() {}\n"
            )
            assert "left-pad" not in result.text
            assert "import" not in result.text
            assert result.language == OUTPUT_LANGUAGE
            assert result.graph.nodes == [a, b]
            assert result.graph.get_external(a) == ["left-pad"]

    def test_cycle_terminates(self):
        """Test that mutually importing files each appear once."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {
                "a.ts": "import { b } from './b';\nexport const a = 1;\n",
                "b.ts": "import { a } from './a';\nexport const b = 2;\n",
            })
            a, b = root / "a.ts", root / "b.ts"

            result = merge_from(a)

            assert result.text.count(format_header(a)) == 1
            assert result.text.count(format_header(b)) == 1
            pos_a, pos_b = _header_positions(result.text, [a, b])
            assert pos_a < pos_b

    def test_self_import(self):
        """Test that a file importing itself is merged once."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {"a.ts": "import * as me from './a';\nexport const x = 1;\n"})
            a = root / "a.ts"

            result = merge_from(a)

            assert result.text.count("SOURCE FILE") == 1
            assert result.graph.get_targets(a) == [a]

    def test_diamond_dependency(self):
        """Test that a shared dependency appears once, at its first visit."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {
                "a.ts": "import './b';\nimport './c';\n",
                "b.ts": "import './d';\nconst b = 1;\n",
                "c.ts": "import './d';\nconst c = 1;\n",
                "d.ts": "const d = 1;\n",
            })
            a, b, c, d = (root / f"{n}.ts" for n in "abcd")

            result = merge_from(a)

            assert result.text.count(format_header(d)) == 1
            positions = _header_positions(result.text, [a, b, d, c])
            assert positions == sorted(positions)
            assert result.graph.nodes == [a, b, d, c]

    def test_subtree_order(self):
        """Test depth-first pre-order: X's subtree precedes Y's."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {
                "main.ts": "import { x } from './x';\nimport { y } from './y';\n",
                "x.ts": "export * from './x1';\nexport const x = 1;\n",
                "x1.ts": "export const x1 = 1;\n",
                "y.ts": "export const y = 1;\n",
            })
            order = [root / f"{n}.ts" for n in ("main", "x", "x1", "y")]

            result = merge_from(order[0])

            positions = _header_positions(result.text, order)
            assert positions == sorted(positions)

    def test_unresolved_imports_skipped(self):
        """Test that typos and uninstalled packages add nothing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {
                "a.ts": "import { x } from './tpyo';\nimport React from 'react';\nconst a = 1;\n",
            })
            a = root / "a.ts"

            result = merge_from(a)

            assert result.text.count("SOURCE FILE") == 1
            assert result.graph.get_unresolved(a) == ["./tpyo", "react"]

    def test_javascript_dependency(self):
        """Test that a local .js file is merged under an empty tsconfig."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {
                "src/a.ts": "import { f } from './legacy';\nf();\n",
                "src/legacy.js": "export function f() {}\n",
            })
            a = root / "src" / "a.ts"
            legacy = root / "src" / "legacy.js"

            result = merge_from(a)

            assert result.text == (
                format_header(a) + "\nf();\n"
                + "\n\n" + format_header(legacy) + "export function f() {}\n"
            )
            assert result.graph.nodes == [a, legacy]
            assert result.graph.unresolved == {}

    def test_typescript_index_preferred_over_js_file(self):
        """Test that ./lib merges lib/index.ts rather than lib.js."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(
                root,
                {
                    "src/a.ts": "import './lib';\n",
                    "src/lib.js": "const fromJs = 1;\n",
                    "src/lib/index.ts": "const fromTs = 1;\n",
                },
                config={"compilerOptions": {"allowJs": True}},
            )
            a = root / "src" / "a.ts"

            result = merge_from(a)

            assert result.graph.nodes == [a, root / "src" / "lib" / "index.ts"]
            assert "fromJs" not in result.text

    def test_alias_resolution(self):
        """Test that paths aliases from tsconfig are followed."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(
                root,
                {
                    "src/app/main.ts": "import { util } from '@lib/util';\n",
                    "src/lib/util.ts": "export const util = 1;\n",
                },
                config={"compilerOptions": {"baseUrl": ".", "paths": {"@lib/*": ["src/lib/*"]}}},
            )

            result = merge_from(root / "src" / "app" / "main.ts")

            assert format_header(root / "src" / "lib" / "util.ts") in result.text

    def test_reference_options_used_for_start_file(self):
        """Test that a referenced project's aliases apply to its own files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            # Not named tsconfig.json, so the root config is the nearest one
            _project(
                root,
                {
                    "pkg/tsconfig.pkg.json": json.dumps({
                        "compilerOptions": {"paths": {"#/*": ["./internal/*"]}},
                    }),
                    "pkg/entry.ts": "import { secret } from '#/secret';\n",
                    "pkg/internal/secret.ts": "export const secret = 1;\n",
                },
                config={"files": [], "references": [{"path": "./pkg/tsconfig.pkg.json"}]},
            )

            result = merge_from(root / "pkg" / "entry.ts")

            assert format_header(root / "pkg" / "internal" / "secret.ts") in result.text


class TestMergeEdgeCases:
    """Tests for missing files and missing configuration."""

    def test_missing_start_file(self):
        """Test that a nonexistent start file yields an empty merge."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {})

            result = merge_from(root / "src" / "nope.ts")

            assert result.text == ""
            assert result.graph.missing == [root / "src" / "nope.ts"]

    def test_start_file_without_extension(self):
        """Test that the start path is probed for source extensions."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _project(root, {"src/a.ts": "const a = 1;\n"})

            result = merge_from(root / "src" / "a")

            assert format_header(root / "src" / "a.ts") in result.text

    def test_no_configuration(self):
        """Test that no tsconfig aborts before any source is read."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            a = _write(root, "a.ts", "import './b';\n")
            parsed = []

            def recording_parse(path, text):
                parsed.append(path)
                return parse(path, text)

            with pytest.raises(ConfigurationNotFound) as excinfo:
                merge_from(a, parse_source=recording_parse)

            assert parsed == []
            assert isinstance(excinfo.value, MergeError)
            assert "tsconfig.json" in str(excinfo.value)


class TestVisit:
    """Tests for the recursive visit step."""

    def test_visited_path_contributes_nothing(self):
        """Test the duplicate guard."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            a = _write(root, "a.ts", "const a = 1;\n")
            options = CompilerOptions(paths_base=root)

            assert visit(a, {a}, options) == ""

    def test_visit_marks_before_recursing(self):
        """Test that the visited set grows monotonically."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            a = _write(root, "a.ts", "import './b';\n")
            b = _write(root, "b.ts", "import './a';\n")
            visited = set()

            visit(a, visited, CompilerOptions(paths_base=root))

            assert visited == {a, b}

    def test_injected_parser(self):
        """Test that traversal only depends on the two-method tree interface."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            a = _write(root, "a.ts", "USE b\nbody-a\n")
            b = _write(root, "b.ts", "body-b\n")

            class FakeTree:
                def __init__(self, text):
                    self.text = text

                def specifiers(self):
                    return ["./b"] if self.text.startswith("USE b") else []

                def statement_ranges(self):
                    return [(0, 6)] if self.text.startswith("USE b") else []

            text = visit(
                a, set(), CompilerOptions(paths_base=root),
                parse_source=lambda path, source: FakeTree(source),
            )

            assert text == format_header(a) + "body-a\n" + "\n\n" + format_header(b) + "body-b\n"


class TestProbeSourceFile:
    """Tests for source file probing."""

    def test_exact_path(self):
        """Test that an existing path is used as is."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(Path(tmpdir), "a.ts")

            assert probe_source_file(path) == path

    def test_extension_order(self):
        """Test that .ts is probed before .js."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            ts_file = _write(root, "a.ts")
            _write(root, "a.js")

            assert probe_source_file(root / "a") == ts_file

    def test_directory_is_not_a_file(self):
        """Test that a directory does not count as a source file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "lib").mkdir()

            assert probe_source_file(root / "lib") is None
