"""Tests for the Go tools."""

import pytest

from app.agents.tools.go.dependency_analyzer import (
    GoDependency,
    GoDependencyAnalysisTool,
    analyze_go_dependencies,
    assess_go_criticality,
    extract_go_module_path,
    is_go_standard_library,
    parse_build_tags,
    parse_go_mod_graph,
    parse_go_source,
)
from app.agents.tools.go.package_manager import (
    GoPackageManagerDetectorTool,
    detect_go_project,
    parse_go_mod,
    parse_go_work,
)
from app.models.schemas import Criticality


# ── go.mod / go.work ────────────────────────────────────────────────────────


class TestParseGoMod:
    def test_directives(self, go_project):
        info = parse_go_mod((go_project / "go.mod").read_text())
        assert info.module_name == "example.com/app"
        assert info.go_version == "1.21"
        assert [(r.path, r.version, r.indirect) for r in info.requires] == [
            ("github.com/gin-gonic/gin", "v1.9.1", False),
            ("golang.org/x/sys", "v0.15.0", True),
        ]
        assert info.replaces == {"github.com/old/lib": "../lib"}

    def test_single_line_require_and_toolchain(self):
        info = parse_go_mod(
            "module github.com/acme/tool\n"
            "go 1.22\n"
            "toolchain go1.22.3\n"
            "require github.com/spf13/cobra v1.8.0\n"
            "exclude github.com/bad/mod v0.1.0\n"
        )
        assert info.toolchain == "go1.22.3"
        assert info.requires[0].path == "github.com/spf13/cobra"
        assert info.excludes == ["github.com/bad/mod v0.1.0"]

    def test_versioned_replace(self):
        info = parse_go_mod("replace github.com/a/b v1.0.0 => github.com/fork/b v1.0.1\n")
        assert info.replaces == {"github.com/a/b": "github.com/fork/b v1.0.1"}

    def test_go_work(self):
        work = parse_go_work("go 1.22\n\nuse (\n\t./api\n\t./worker\n)\n")
        assert work.go_version == "1.22"
        assert work.use == ["./api", "./worker"]


class TestDetectGoProject:
    def test_module_project(self, go_project):
        info = detect_go_project(str(go_project))
        assert info.is_go_project
        assert info.module_mode
        assert not info.gopath_mode
        assert info.module_path == "example.com/app"
        assert info.has_go_sum
        assert info.confidence == "high"
        assert sorted(info.go_files) == ["internal/store/store.go", "main.go"]

    def test_workspace(self, tmp_path):
        (tmp_path / "go.work").write_text("go 1.22\nuse ./svc\n")
        (tmp_path / "main.go").write_text("package main\n")
        info = detect_go_project(str(tmp_path))
        assert info.is_workspace
        assert info.workspace_modules == ["./svc"]
        assert info.go_version == "1.22"

    def test_gopath_mode(self, tmp_path):
        (tmp_path / "main.go").write_text("package main\n")
        info = detect_go_project(str(tmp_path))
        assert info.gopath_mode
        assert info.confidence == "medium"

    def test_not_go(self, tmp_path):
        (tmp_path / "README.md").write_text("hi")
        info = detect_go_project(str(tmp_path))
        assert not info.is_go_project
        assert info.confidence == "low"

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            detect_go_project(str(tmp_path / "missing"))

    @pytest.mark.asyncio
    async def test_tool(self, go_project):
        result = await GoPackageManagerDetectorTool().execute(project_path=str(go_project))
        assert result.success
        assert result.data["module_path"] == "example.com/app"


# ── source parsing ──────────────────────────────────────────────────────────


class TestParseGoSource:
    def test_import_block(self):
        parsed = parse_go_source(
            "package main\n\n"
            "import (\n"
            '\t"fmt"\n'
            '\tlog "github.com/sirupsen/logrus"\n'
            '\t_ "github.com/lib/pq"\n'
            '\t. "github.com/onsi/gomega"\n'
            ")\n"
        )
        assert parsed.package_name == "main"
        assert [(i.import_path, i.type, i.alias) for i in parsed.imports] == [
            ("fmt", "standard-import", None),
            ("github.com/sirupsen/logrus", "named-import", "log"),
            ("github.com/lib/pq", "blank-import", None),
            ("github.com/onsi/gomega", "dot-import", None),
        ]
        assert [i.line for i in parsed.imports] == [4, 5, 6, 7]

    def test_single_import(self):
        parsed = parse_go_source('package x\n\nimport "strings"\n')
        assert parsed.imports[0].import_path == "strings"

    def test_build_tags_attach_to_imports(self):
        parsed = parse_go_source(
            "//go:build linux && amd64\n\n"
            "package sys\n\n"
            'import "golang.org/x/sys/unix"\n'
        )
        assert parsed.build_tags == ["linux", "amd64"]
        assert parsed.imports[0].build_tags == ["linux", "amd64"]
        assert parsed.imports[0].conditional

    def test_cgo(self):
        parsed = parse_go_source('package c\n\n// #include <stdio.h>\nimport "C"\n')
        assert parsed.cgo_usage

    def test_legacy_build_line(self):
        assert parse_build_tags("// +build linux,!cgo darwin") == ["linux", "cgo", "darwin"]

    def test_build_line_operators(self):
        assert parse_build_tags("//go:build (linux || darwin) && !race") == ["linux", "darwin", "race"]


class TestModulePaths:
    @pytest.mark.parametrize("path,expected", [
        ("fmt", True),
        ("net/http", True),
        ("golang.org/x/net/http2", True),
        ("github.com/gin-gonic/gin", False),
    ])
    def test_standard_library(self, path, expected):
        assert is_go_standard_library(path) is expected

    @pytest.mark.parametrize("path,expected", [
        ("github.com/gin-gonic/gin/render", "github.com/gin-gonic/gin"),
        ("gorm.io/gorm", "gorm.io/gorm"),
        ("net/http", "net/http"),
    ])
    def test_extract_module_path(self, path, expected):
        assert extract_go_module_path(path) == expected

    @pytest.mark.parametrize("path,expected", [
        ("github.com/redis/go-redis/v9", "github.com/redis/go-redis/v9"),
        ("go.uber.org/zap/zapcore", "go.uber.org/zap"),
        ("github.com/gin-gonic/gin/render", "github.com/gin-gonic/gin"),
        ("github.com/other/lib/pkg", "github.com/other/lib"),
    ])
    def test_required_module_wins(self, path, expected):
        required = ["github.com/redis/go-redis/v9", "go.uber.org/zap", "github.com/gin-gonic/gin"]
        assert extract_go_module_path(path, required) == expected

    def test_mod_graph(self):
        output = (
            "example.com/app github.com/gin-gonic/gin@v1.9.1\n"
            "github.com/gin-gonic/gin@v1.9.1 golang.org/x/net@v0.17.0\n"
        )
        graph = parse_go_mod_graph(output)
        assert graph["github.com/gin-gonic/gin"] == ["example.com/app"]
        assert graph["golang.org/x/net"] == ["github.com/gin-gonic/gin"]


# ── criticality ─────────────────────────────────────────────────────────────


class TestAssessGoCriticality:
    def test_direct_framework_is_high(self):
        dep = GoDependency(path="github.com/gin-gonic/gin", is_direct=True, usage_count=1)
        assert assess_go_criticality(dep) == Criticality.HIGH

    def test_stdlib_is_low(self):
        dep = GoDependency(path="fmt", is_standard_library=True, usage_count=3)
        assert assess_go_criticality(dep) == Criticality.LOW
        assert "Go standard library (lower risk)" in dep.criticality_reasons

    def test_cgo_and_replace_raise_score(self):
        dep = GoDependency(path="example.org/x/y", is_replaced=True, cgo_required=True)
        assess_go_criticality(dep)
        assert "Requires CGO (cross-compilation complexity)" in dep.criticality_reasons
        assert "Has replace directive (custom/forked dependency)" in dep.criticality_reasons

    def test_monotonic_in_usage(self):
        order = [Criticality.LOW, Criticality.MEDIUM, Criticality.HIGH]
        levels = []
        for count in (0, 1, 2, 5, 10, 30):
            dep = GoDependency(path="github.com/acme/util", usage_count=count)
            levels.append(order.index(assess_go_criticality(dep)))
        assert levels == sorted(levels)


# ── analyze_go_dependencies ─────────────────────────────────────────────────


class TestAnalyzeGoDependencies:
    @pytest.mark.asyncio
    async def test_project(self, go_project):
        data = await analyze_go_dependencies(str(go_project), analyze_indirect=False)
        deps = {d["path"]: d for d in data["dependencies"]}

        assert data["module_info"]["module_path"] == "example.com/app"
        assert data["module_info"]["go_version"] == "1.21"
        assert set(deps) == {"github.com/gin-gonic/gin", "fmt"}
        gin = deps["github.com/gin-gonic/gin"]
        assert gin["version"] == "v1.9.1"
        assert gin["is_direct"]
        assert gin["usage_count"] == 2
        assert gin["criticality"] == "HIGH"
        assert deps["fmt"]["is_standard_library"]

    @pytest.mark.asyncio
    async def test_versioned_and_subpackage_imports_match_go_mod(self, tmp_path):
        (tmp_path / "go.mod").write_text(
            "module example.com/svc\n\n"
            "go 1.21\n\n"
            "require (\n"
            "\tgithub.com/redis/go-redis/v9 v9.0.5\n"
            "\tgo.uber.org/zap v1.26.0\n"
            ")\n"
        )
        (tmp_path / "main.go").write_text(
            "package main\n\n"
            "import (\n"
            '\t"github.com/redis/go-redis/v9"\n'
            '\t"go.uber.org/zap/zapcore"\n'
            ")\n"
        )
        data = await analyze_go_dependencies(str(tmp_path), analyze_indirect=False)
        deps = {d["path"]: (d["version"], d["is_direct"]) for d in data["dependencies"]}
        assert deps == {
            "github.com/redis/go-redis/v9": ("v9.0.5", True),
            "go.uber.org/zap": ("v1.26.0", True),
        }

    @pytest.mark.asyncio
    async def test_internal_imports_are_split_out(self, go_project):
        data = await analyze_go_dependencies(str(go_project), analyze_indirect=False)
        main = next(f for f in data["files"] if f["file_path"] == "main.go")
        assert main["internal_dependencies"] == ["example.com/app/internal/store"]
        assert main["external_dependencies"] == ["github.com/gin-gonic/gin"]
        assert main["standard_library_imports"] == ["fmt"]
        assert data["analysis_results"]["total_packages"] == 2

    @pytest.mark.asyncio
    async def test_recommendations(self, go_project):
        data = await analyze_go_dependencies(str(go_project), analyze_indirect=False)
        assert "Run `go mod tidy` regularly to clean up unused dependencies" in data["recommendations"]
        assert data["build_info"]["cgo_required"] is False

    @pytest.mark.asyncio
    async def test_exclude_tests(self, go_project):
        (go_project / "main_test.go").write_text('package main\n\nimport "testing"\n')
        with_tests = await analyze_go_dependencies(str(go_project), analyze_indirect=False)
        without = await analyze_go_dependencies(str(go_project), include_tests=False, analyze_indirect=False)
        assert with_tests["analysis_results"]["total_files"] == 3
        assert without["analysis_results"]["total_files"] == 2

    @pytest.mark.asyncio
    async def test_not_a_go_project(self, tmp_path):
        with pytest.raises(ValueError, match="Not a Go project"):
            await analyze_go_dependencies(str(tmp_path), analyze_indirect=False)

    @pytest.mark.asyncio
    async def test_tool_error(self, tmp_path):
        result = await GoDependencyAnalysisTool().execute(project_path=str(tmp_path), analyze_indirect=False)
        assert not result.success
        assert result.error.startswith("Failed to analyze Go dependencies")
