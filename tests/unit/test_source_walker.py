"""Tests for source file discovery and GitHub token resolution."""

import pytest

from app.core import config
from app.services.source_walker import (
    MAX_READ_SIZE,
    expand_braces,
    find_source_files,
    glob_matches,
    read_text_safe,
)


# ── globbing ────────────────────────────────────────────────────────────────


class TestGlobbing:
    def test_expand_braces(self):
        assert expand_braces("**/*.{js,ts}") == ["**/*.js", "**/*.ts"]
        assert expand_braces("{a,b}/{c,d}") == ["a/c", "a/d", "b/c", "b/d"]
        assert expand_braces("plain.py") == ["plain.py"]

    @pytest.mark.parametrize("path,patterns,expected", [
        ("index.js", ["**/*.js"], True),
        ("src/deep/a.ts", ["**/*.{js,ts}"], True),
        ("src/a.jsx", ["**/*.{js,ts}"], False),
        ("dist/bundle.js", ["**/dist/**"], True),
        ("src/dist.js", ["**/dist/**"], False),
        ("src/a.js", ["*.js"], True),
        ("src/a.js", ["/*.js"], False),
        ("vendor/x.go", ["vendor/**"], True),
        ("lib/vendor/x.go", ["vendor/**"], False),
        ("a1.py", ["a?.py"], True),
    ])
    def test_glob_matches(self, path, patterns, expected):
        assert glob_matches(path, patterns) == expected


# ── find_source_files ───────────────────────────────────────────────────────


class TestFindSourceFiles:
    @pytest.fixture
    def tree(self, tmp_path):
        for rel in [
            "index.js",
            "src/app.ts",
            "src/nested/deeper/util.js",
            "dist/bundle.js",
            "node_modules/lodash/index.js",
            "pkg.egg-info/top.js",
            "README.md",
        ]:
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("// x\n")
        return tmp_path

    def test_include_exclude_and_skip_dirs(self, tree):
        found = find_source_files(str(tree), ["**/*.{js,ts}"], ["**/dist/**"])
        rel = [p.relative_to(tree.resolve()).as_posix() for p in found]
        assert rel == ["index.js", "src/app.ts", "src/nested/deeper/util.js"]

    def test_max_depth(self, tree):
        found = find_source_files(str(tree), ["**/*.{js,ts}"], max_depth=1)
        rel = [p.relative_to(tree.resolve()).as_posix() for p in found]
        assert "src/app.ts" in rel
        assert "src/nested/deeper/util.js" not in rel


class TestReadTextSafe:
    def test_reads_with_replacement(self, tmp_path):
        path = tmp_path / "bad.py"
        path.write_bytes(b"import os\n\xff\n")
        assert read_text_safe(path).startswith("import os\n")

    def test_missing_and_large(self, tmp_path):
        assert read_text_safe(tmp_path / "missing.py") == ""
        big = tmp_path / "big.js"
        big.write_bytes(b"a" * (MAX_READ_SIZE + 1))
        assert read_text_safe(big) == ""


# ── resolve_github_token ────────────────────────────────────────────────────


class FakeSettings:
    def __init__(self, github_token=None):
        self.github_token = github_token


class TestResolveGithubToken:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in config.GITHUB_TOKEN_ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_explicit_wins(self, monkeypatch):
        monkeypatch.setattr(config, "get_settings", lambda: FakeSettings("from-settings"))
        assert config.resolve_github_token("explicit") == "explicit"

    def test_settings_then_env(self, monkeypatch):
        monkeypatch.setattr(config, "get_settings", lambda: FakeSettings("from-settings"))
        assert config.resolve_github_token() == "from-settings"

        monkeypatch.setattr(config, "get_settings", lambda: FakeSettings())
        monkeypatch.setenv("GH_TOKEN", "from-gh")
        assert config.resolve_github_token() == "from-gh"

    def test_none(self, monkeypatch):
        monkeypatch.setattr(config, "get_settings", lambda: FakeSettings())
        assert config.resolve_github_token() is None
