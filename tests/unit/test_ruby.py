"""Tests for the Ruby/Bundler tools."""

import pytest

from app.agents.tools.ruby.bundler import parse_gemfile, parse_gemfile_lock
from app.agents.tools.ruby.dependency_analyzer import (
    RubyDependencyAnalysisTool,
    RubyGem,
    analyze_ruby_dependencies,
    assess_gem_criticality,
    gem_name_for,
    identify_security_concerns,
    parse_ruby_requires,
)
from app.agents.tools.ruby.package_manager import (
    RubyPackageManagerDetectorTool,
    detect_ruby_project,
)
from app.models.schemas import Criticality


# ── Gemfile ─────────────────────────────────────────────────────────────────


class TestParseGemfile:
    @pytest.fixture
    def gemfile(self, ruby_project):
        return parse_gemfile((ruby_project / "Gemfile").read_text())

    def test_sources_and_ruby(self, gemfile):
        assert gemfile.sources == ["https://rubygems.org"]
        assert gemfile.ruby_version == "3.2.2"

    def test_constraints(self, gemfile):
        assert gemfile.gems["rails"].version_constraint == "~> 7.1.0"
        assert gemfile.gems["pg"].version_constraint == ">= 1.1, < 2.0"
        assert gemfile.gems["nokogiri"].version_constraint is None

    def test_git_source(self, gemfile):
        sidekiq = gemfile.gems["sidekiq"]
        assert sidekiq.source == "git:https://github.com/sidekiq/sidekiq.git"
        assert sidekiq.version_constraint is None

    def test_group_block(self, gemfile):
        assert gemfile.gems["rspec-rails"].groups == ["development", "test"]
        assert gemfile.gems["rails"].groups == []

    def test_nested_block_does_not_close_group(self, gemfile):
        assert gemfile.gems["byebug"].groups == ["development", "test"]

    def test_inline_group(self, gemfile):
        assert gemfile.gems["rubocop"].groups == ["development"]
        assert gemfile.groups == ["development", "test"]

    def test_line_numbers(self, gemfile):
        assert gemfile.gems["rails"].line == 4

    def test_comments_are_ignored(self):
        gemfile = parse_gemfile("# gem 'ghost'\ngem 'puma' # web server\n")
        assert list(gemfile.gems) == ["puma"]

    def test_inline_groups_array(self):
        gemfile = parse_gemfile("gem 'debug', groups: [:development, :test]\n")
        assert gemfile.gems["debug"].groups == ["development", "test"]

    def test_default_source(self):
        assert parse_gemfile("gem 'rack'\n").sources == ["https://rubygems.org"]


class TestParseGemfileLock:
    def test_specs(self, ruby_project):
        lock = parse_gemfile_lock((ruby_project / "Gemfile.lock").read_text())
        assert lock.specs == {"nokogiri": "1.15.4", "pg": "1.5.4", "rails": "7.1.2", "racc": "1.7.3"}

    def test_dependencies_and_bundler(self, ruby_project):
        lock = parse_gemfile_lock((ruby_project / "Gemfile.lock").read_text())
        assert lock.dependencies == ["nokogiri", "pg", "rails"]
        assert lock.bundler_version == "2.4.22"

    def test_empty(self):
        lock = parse_gemfile_lock("")
        assert lock.specs == {}
        assert lock.bundler_version is None


# ── detect_ruby_project ─────────────────────────────────────────────────────


class TestDetectRubyProject:
    def test_rails_app(self, ruby_project):
        info = detect_ruby_project(str(ruby_project))
        assert info.is_ruby_project
        assert info.package_manager == "bundler"
        assert info.ruby_version == "3.2.2"
        assert info.version_manager == "gemfile"
        assert info.bundler_version == "2.4.22"
        assert info.is_rails
        assert info.rails_indicators == ["rails gem", "config/application.rb"]
        assert info.confidence == "high"

    def test_ruby_version_file(self, tmp_path):
        (tmp_path / ".ruby-version").write_text("ruby-3.3.0\n")
        info = detect_ruby_project(str(tmp_path))
        assert info.ruby_version == "3.3.0"
        assert info.version_manager == "rbenv"
        assert info.is_ruby_project

    def test_tool_versions(self, tmp_path):
        (tmp_path / ".tool-versions").write_text("nodejs 20.10.0\nruby 3.1.4\n")
        info = detect_ruby_project(str(tmp_path))
        assert (info.ruby_version, info.version_manager) == ("3.1.4", "asdf")

    def test_rvmrc(self, tmp_path):
        (tmp_path / ".rvmrc").write_text("rvm use ruby-2.7.8@app\n")
        assert detect_ruby_project(str(tmp_path)).version_manager == "rvm"

    def test_gemspec_only(self, tmp_path):
        (tmp_path / "mygem.gemspec").write_text("Gem::Specification.new do |s|\nend\n")
        info = detect_ruby_project(str(tmp_path))
        assert info.package_manager == "rubygems"
        assert info.gemspecs == ["mygem.gemspec"]

    def test_not_ruby(self, tmp_path):
        info = detect_ruby_project(str(tmp_path))
        assert not info.is_ruby_project
        assert info.confidence == "low"

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            detect_ruby_project(str(tmp_path / "missing"))

    @pytest.mark.asyncio
    async def test_tool(self, ruby_project):
        result = await RubyPackageManagerDetectorTool().execute(project_path=str(ruby_project))
        assert result.success
        assert result.data["groups"] == ["development", "test"]


# ── requires ────────────────────────────────────────────────────────────────


class TestParseRubyRequires:
    def test_kinds(self):
        requires = parse_ruby_requires(
            "require 'json'\n"
            "require_relative '../lib/helper'\n"
            "load 'tasks/setup.rake'\n"
            "autoload :Client, 'octokit/client'\n"
            "Bundler.require(:default)\n"
        )
        assert [(r.type, r.gem_name) for r in requires] == [
            ("require", "json"),
            ("require_relative", "relative"),
            ("load", "tasks"),
            ("autoload", "octokit"),
            ("bundler-require", "bundler"),
        ]

    def test_parenthesized(self):
        [req] = parse_ruby_requires('require("active_support/core_ext")\n')
        assert req.target == "active_support/core_ext"
        assert req.gem_name == "active_support"

    def test_begin_rescue_is_conditional(self):
        requires = parse_ruby_requires("begin\n  require 'oj'\nrescue LoadError\nend\n")
        assert requires[0].is_conditional

    def test_modifier_if_is_conditional(self):
        [req] = parse_ruby_requires("require 'pry' if ENV['DEBUG']\n")
        assert req.is_conditional

    def test_method_body_is_not_conditional(self):
        [req] = parse_ruby_requires("def setup\n  require 'yaml'\nend\n")
        assert not req.is_conditional

    def test_gem_name_for(self):
        assert gem_name_for("./local") == "relative"
        assert gem_name_for("rails/all") == "rails"


# ── criticality and concerns ────────────────────────────────────────────────


class TestGemCriticality:
    def test_core_gem(self):
        assert assess_gem_criticality(RubyGem(name="rails")) == Criticality.HIGH

    def test_rails_component_only_in_rails_apps(self):
        assert assess_gem_criticality(RubyGem(name="actionpack", groups=["test"]), is_rails=True) == Criticality.HIGH
        assert assess_gem_criticality(RubyGem(name="actionpack", groups=["test"])) == Criticality.LOW

    def test_production_gem_is_medium(self):
        assert assess_gem_criticality(RubyGem(name="pg")) == Criticality.MEDIUM

    def test_dev_gem_is_low(self):
        gem = RubyGem(name="rspec", groups=["test"])
        assert assess_gem_criticality(gem) == Criticality.LOW
        assert gem.criticality_reasons == ["Development or test only, low usage"]

    def test_heavy_usage_is_high(self):
        assert assess_gem_criticality(RubyGem(name="dry-types", groups=["test"], usage_count=12)) == Criticality.HIGH


class TestSecurityConcerns:
    def test_missing_lock(self):
        concerns = identify_security_concerns([], has_lock=False)
        assert concerns == ["Gemfile.lock is missing (inconsistent dependency versions)"]

    def test_undeclared(self):
        concerns = identify_security_concerns([RubyGem(name="oj", is_declared=False, usage_count=1)], has_lock=True)
        assert concerns == ["1 gems used in code but not declared in Gemfile"]

    def test_path_source_is_not_git(self):
        gems = [RubyGem(name="local", source="path:../local", version_constraint="1.0")]
        assert identify_security_concerns(gems, has_lock=True) == []

    def test_dev_gem_in_production_code(self):
        gems = [RubyGem(name="pry", groups=["development"], version_constraint="~> 0.14", files=["app/x.rb"])]
        assert identify_security_concerns(gems, has_lock=True) == [
            "1 development gems required from production code"
        ]


# ── analyze_ruby_dependencies ───────────────────────────────────────────────


class TestAnalyzeRubyDependencies:
    def test_project(self, ruby_project):
        data = analyze_ruby_dependencies(str(ruby_project))
        gems = {g["name"]: g for g in data["gems"]}

        assert data["analysis_results"]["total_files"] == 2
        assert data["analysis_results"]["rails_version"] == "7.1.2"
        assert data["analysis_results"]["undeclared_gems"] == 0
        assert gems["rails"]["usage_count"] == 1
        assert gems["rails"]["criticality"] == "HIGH"
        assert gems["nokogiri"]["resolved_version"] == "1.15.4"
        assert gems["nokogiri"]["files"] == ["app/models/report.rb"]
        assert gems["pg"]["criticality"] == "MEDIUM"
        assert gems["rspec-rails"]["criticality"] == "LOW"
        assert "csv" not in gems
        assert "bundler" not in gems

    def test_concerns(self, ruby_project):
        data = analyze_ruby_dependencies(str(ruby_project))
        assert "1 gems without version constraints (security risk)" in data["security_concerns"]
        assert any("git sources (sidekiq)" in c for c in data["security_concerns"])
        summary = data["summary"]
        assert summary["critical_issues"] == ["1 gems without version constraints (security risk)"]
        assert 0 <= summary["health_score"] < 100

    def test_recommendations(self, ruby_project):
        data = analyze_ruby_dependencies(str(ruby_project))
        assert "Run `bundle audit` regularly to check for vulnerable gems" in data["recommendations"]
        assert not any("Consider upgrading Rails" in r for r in data["recommendations"])

    def test_old_rails_recommendation(self, tmp_path):
        (tmp_path / "Gemfile").write_text("gem 'rails', '~> 6.1'\n")
        data = analyze_ruby_dependencies(str(tmp_path))
        assert "Consider upgrading Rails ~> 6.1 to 7.x for security support" in data["recommendations"]
        assert "Gemfile.lock is missing (inconsistent dependency versions)" in data["security_concerns"]

    def test_not_ruby(self, tmp_path):
        with pytest.raises(ValueError, match="Not a Ruby project"):
            analyze_ruby_dependencies(str(tmp_path))

    @pytest.mark.asyncio
    async def test_tool(self, ruby_project):
        result = await RubyDependencyAnalysisTool().execute(project_path=str(ruby_project))
        assert result.success
        assert result.data["project_info"]["is_rails"]
