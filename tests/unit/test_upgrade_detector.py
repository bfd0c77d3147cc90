"""Tests for upgrade detection and semver classification."""

import pytest

from app.models.schemas import Ecosystem
from app.services.upgrade_detector import (
    UPGRADE_KEYWORDS,
    detect_dependency_upgrade,
    detect_ecosystem_from_files,
    detect_ecosystem_from_labels,
    detect_ecosystem_from_title,
    extract_versions,
    is_dependency_upgrade,
)
from app.services.versioning import analyze_version_difference, normalize_version


# ── versioning ──────────────────────────────────────────────────────────────


class TestNormalizeVersion:
    def test_strips_v(self):
        assert normalize_version("v1.2.3") == "1.2.3"
        assert normalize_version("V2.0") == "2.0"

    def test_whitespace(self):
        assert normalize_version("  1.0.0 ") == "1.0.0"

    def test_empty(self):
        assert normalize_version(None) == ""
        assert normalize_version("") == ""


class TestAnalyzeVersionDifference:
    @pytest.mark.parametrize("old,new,expected", [
        ("1.2.3", "2.0.0", "major"),
        ("1.2.3", "1.3.0", "minor"),
        ("4.17.20", "4.17.21", "patch"),
        ("v1.0", "v1.1", "minor"),
        ("1.0.0-beta.1", "1.0.1", "patch"),
        ("1.2.3", "1.2.3", "unknown"),
        ("latest", "next", "unknown"),
    ])
    def test_semver_type(self, old, new, expected):
        assert analyze_version_difference(old, new).semver_type == expected

    def test_flags(self):
        diff = analyze_version_difference("1.9.0", "2.0.0")
        assert diff.major_change
        assert not diff.minor_change
        assert not diff.patch_change

    def test_normalized_versions_kept(self):
        diff = analyze_version_difference("v3.1.0", "v3.2.0")
        assert diff.from_version == "3.1.0"
        assert diff.to_dict()["to_version"] == "3.2.0"


# ── is_dependency_upgrade ───────────────────────────────────────────────────


class TestIsDependencyUpgrade:
    @pytest.mark.parametrize("title", [
        "Bump lodash from 4.17.20 to 4.17.21",
        "chore(deps): update dependency react to v18.3.0",
        "Upgrade Spring Boot",
        "build(deps): bump golang.org/x/net",
    ])
    def test_upgrade_titles(self, title):
        assert is_dependency_upgrade(title)

    def test_feature_title(self):
        assert not is_dependency_upgrade("Add dark mode toggle")

    def test_dependencies_label(self):
        assert is_dependency_upgrade("Weekly maintenance", ["dependencies"])

    def test_label_keyword(self):
        assert is_dependency_upgrade("Weekly maintenance", ["needs-upgrade"])

    @pytest.mark.parametrize("keyword", UPGRADE_KEYWORDS)
    def test_every_keyword(self, keyword):
        assert is_dependency_upgrade(f"Nightly: {keyword}")

    def test_gradle_only_title(self):
        info = detect_dependency_upgrade({"title": "Gradle wrapper 8.4 -> 8.5", "labels": []})
        assert info.is_dependency_upgrade
        assert info.ecosystem == Ecosystem.JAVA


# ── ecosystem detection ─────────────────────────────────────────────────────


class TestEcosystemDetection:
    @pytest.mark.parametrize("title,expected", [
        ("Bump lodash in package.json", Ecosystem.JAVASCRIPT),
        ("chore(deps): yarn upgrade", Ecosystem.JAVASCRIPT),
        ("Update pom.xml dependencies", Ecosystem.JAVA),
        ("Bump gradle wrapper", Ecosystem.JAVA),
        ("go mod tidy after bump", Ecosystem.GO),
        ("Bump requests in requirements.txt", Ecosystem.PYTHON),
        ("Update Gemfile.lock", Ecosystem.RUBY),
        ("Bump something", Ecosystem.UNKNOWN),
    ])
    def test_from_title(self, title, expected):
        assert detect_ecosystem_from_title(title) == expected

    def test_title_order_prefers_javascript(self):
        assert detect_ecosystem_from_title("npm and maven updates") == Ecosystem.JAVASCRIPT

    def test_from_labels(self):
        assert detect_ecosystem_from_labels(["dependencies", "python"]) == Ecosystem.PYTHON
        assert detect_ecosystem_from_labels(["Bundler"]) == Ecosystem.RUBY
        assert detect_ecosystem_from_labels(["dependencies"]) == Ecosystem.UNKNOWN

    def test_from_files(self):
        ecosystem, files = detect_ecosystem_from_files([
            "package.json", "package-lock.json", "src/index.js", "go.mod",
        ])
        assert ecosystem == Ecosystem.JAVASCRIPT
        assert files == ["package.json", "package-lock.json"]

    def test_from_nested_files(self):
        ecosystem, files = detect_ecosystem_from_files(["services/api/requirements-dev.txt"])
        assert ecosystem == Ecosystem.PYTHON
        assert files == ["services/api/requirements-dev.txt"]

    def test_from_files_unknown(self):
        assert detect_ecosystem_from_files(["README.md"]) == (Ecosystem.UNKNOWN, [])


# ── extract_versions ────────────────────────────────────────────────────────


class TestExtractVersions:
    def test_bump(self):
        assert extract_versions("Bump lodash from 4.17.20 to 4.17.21") == ("lodash", "4.17.20", "4.17.21")

    def test_bump_scoped_package(self):
        name, old, new = extract_versions("build(deps): bump @sentry/node from 7.0.0 to 8.0.0 in /web")
        assert (name, old, new) == ("@sentry/node", "7.0.0", "8.0.0")

    def test_update_without_from(self):
        assert extract_versions("Update rails to 7.1.2") == ("rails", None, "7.1.2")

    def test_update_requirement(self):
        assert extract_versions("Update pytest requirement from >=7.0 to >=8.0") == ("pytest", ">=7.0", ">=8.0")

    def test_no_match(self):
        assert extract_versions("Refactor the parser") == (None, None, None)


# ── detect_dependency_upgrade ───────────────────────────────────────────────


class TestDetectDependencyUpgrade:
    def test_dependabot_bump(self):
        info = detect_dependency_upgrade(
            {"title": "Bump lodash from 4.17.20 to 4.17.21", "labels": [{"name": "javascript"}]}
        )
        assert info.is_dependency_upgrade
        assert info.dependency_name == "lodash"
        assert info.old_version == "4.17.20"
        assert info.new_version == "4.17.21"
        assert info.change_type == "patch"
        assert info.confidence == "high"
        assert info.ecosystem == Ecosystem.JAVASCRIPT

    def test_ecosystem_from_changed_files(self):
        info = detect_dependency_upgrade(
            {"title": "Bump lodash from 4.17.20 to 4.17.21"},
            ["package.json", "yarn.lock"],
        )
        assert info.ecosystem == Ecosystem.JAVASCRIPT
        assert info.detected_files == ["package.json", "yarn.lock"]

    def test_title_ecosystem_wins_over_files(self):
        info = detect_dependency_upgrade(
            {"title": "Bump django in requirements.txt"}, ["package.json"]
        )
        assert info.ecosystem == Ecosystem.PYTHON

    def test_new_version_only_is_medium(self):
        info = detect_dependency_upgrade({"title": "Update rails to 7.1.2", "labels": ["ruby"]})
        assert (info.dependency_name, info.old_version, info.new_version) == ("rails", None, "7.1.2")
        assert info.change_type is None
        assert info.confidence == "medium"

    def test_medium_confidence(self):
        info = detect_dependency_upgrade({"title": "Weekly dependency update", "labels": ["go"]})
        assert info.is_dependency_upgrade
        assert info.ecosystem == Ecosystem.GO
        assert info.dependency_name is None
        assert info.confidence == "medium"

    def test_low_confidence(self):
        info = detect_dependency_upgrade({"title": "Upgrade everything"})
        assert info.confidence == "low"
        assert info.ecosystem == Ecosystem.UNKNOWN

    def test_not_an_upgrade(self):
        info = detect_dependency_upgrade({"title": "Fix typo in README", "labels": []})
        assert not info.is_dependency_upgrade
        assert info.dependency_name is None
