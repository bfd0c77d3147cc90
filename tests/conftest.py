"""Shared test fixtures for the Evergreen test suite."""

import json
from typing import List, Optional

import pytest

from app.agents.base import AgentResponse, BaseAgent, BaseTool, ToolResult


CHANGELOG_MD = """# Changelog

## Unreleased

- Work in progress

## [10.5.0] - 2024-08-01

### Breaking Changes
- Removed support for Node 14
- Drop deprecated `init` option ([#1234](https://github.com/getsentry/sentry-javascript/pull/1234))

### Features
- Add new tracing API

## [10.4.0] - 2024-07-15

- feat: add replay integration
- fix: resolve memory leak in transport ([#1200](https://github.com/getsentry/sentry-javascript/issues/1200))

## 10.3.0 (2024-07-01)

- fix: patch crash on startup

## v10.2.0

- Initial release of the v10 line
"""


@pytest.fixture
def changelog_markdown():
    return CHANGELOG_MD


@pytest.fixture
def changelog_file(tmp_path):
    path = tmp_path / "CHANGELOG.md"
    path.write_text(CHANGELOG_MD)
    return path


# ── ecosystem projects ──────────────────────────────────────────────────────


@pytest.fixture
def js_project(tmp_path):
    """A small npm project with React, lodash and a dev-only jest."""
    root = tmp_path / "js"
    (root / "src" / "components").mkdir(parents=True)
    (root / "package.json").write_text(json.dumps({
        "name": "web",
        "packageManager": "npm@10.2.0",
        "dependencies": {"react": "^18.2.0", "lodash": "^4.17.20", "left-pad": "^1.3.0"},
        "devDependencies": {"jest": "^29.0.0"},
    }))
    (root / "package-lock.json").write_text("{}")
    (root / "src" / "index.js").write_text(
        "import React from 'react';\n"
        "import { debounce } from 'lodash';\n"
        "import './styles.css';\n"
        "const path = require('path');\n"
    )
    (root / "src" / "components" / "App.tsx").write_text(
        "import React, { useState } from 'react';\n"
        "import type { Props } from './types';\n"
        "import get from 'lodash/get';\n"
        "export const App = () => null;\n"
    )
    (root / "node_modules" / "react").mkdir(parents=True)
    (root / "node_modules" / "react" / "index.js").write_text("import x from 'ignored';\n")
    return root


@pytest.fixture
def python_project(tmp_path):
    """A pip project with requirements files, a pyproject and a local package."""
    root = tmp_path / "py"
    (root / "myapp").mkdir(parents=True)
    (root / "requirements.txt").write_text("requests>=2.31\nflask==3.0.0  # web\n-r other.txt\n")
    (root / "requirements-dev.txt").write_text("pytest>=8.0\n")
    (root / "pyproject.toml").write_text(
        '[project]\nname = "myapp"\nrequires-python = ">=3.11"\n'
        'dependencies = ["requests>=2.31"]\n\n'
        "[project.optional-dependencies]\n"
        'dev = ["pytest>=8.0"]\n'
    )
    (root / "myapp" / "__init__.py").write_text("")
    (root / "myapp" / "helpers.py").write_text("def helper():\n    return 1\n")
    (root / "myapp" / "main.py").write_text(
        "import os\n"
        "import requests\n"
        "from flask import Flask, jsonify\n"
        "from myapp.helpers import helper\n"
        "\n"
        "try:\n"
        "    import ujson as json\n"
        "except ImportError:\n"
        "    import json\n"
    )
    (root / "tests").mkdir()
    (root / "tests" / "test_main.py").write_text("import pytest\nimport requests\n")
    return root


@pytest.fixture
def go_project(tmp_path):
    """A Go module with one external, one indirect and one replaced requirement."""
    root = tmp_path / "go"
    (root / "internal" / "store").mkdir(parents=True)
    (root / "go.mod").write_text(
        "module example.com/app\n\n"
        "go 1.21\n\n"
        "require (\n"
        "\tgithub.com/gin-gonic/gin v1.9.1\n"
        "\tgolang.org/x/sys v0.15.0 // indirect\n"
        ")\n\n"
        "replace github.com/old/lib => ../lib\n"
    )
    (root / "go.sum").write_text("github.com/gin-gonic/gin v1.9.1 h1:abc=\n")
    (root / "main.go").write_text(
        "package main\n\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"github.com/gin-gonic/gin"\n'
        '\t"example.com/app/internal/store"\n'
        ")\n\n"
        "func main() { fmt.Println(gin.Version, store.Name) }\n"
    )
    (root / "internal" / "store" / "store.go").write_text(
        "package store\n\nimport \"github.com/gin-gonic/gin/render\"\n\nvar Name = render.JSON{}\n"
    )
    return root


@pytest.fixture
def ruby_project(tmp_path):
    """A Rails app with grouped, pinned, unpinned and git-sourced gems."""
    root = tmp_path / "rb"
    (root / "config").mkdir(parents=True)
    (root / "app" / "models").mkdir(parents=True)
    (root / "Gemfile").write_text(
        "source 'https://rubygems.org'\n"
        "ruby '3.2.2'\n\n"
        "gem 'rails', '~> 7.1.0'\n"
        "gem 'pg', '>= 1.1', '< 2.0'\n"
        "gem 'nokogiri'\n"
        "gem 'sidekiq', git: 'https://github.com/sidekiq/sidekiq.git'\n\n"
        "group :development, :test do\n"
        "  gem 'rspec-rails', '~> 6.0'\n"
        "  platforms :mri do\n"
        "    gem 'byebug'\n"
        "  end\n"
        "end\n\n"
        "gem 'rubocop', require: false, group: :development\n"
    )
    (root / "Gemfile.lock").write_text(
        "GEM\n"
        "  remote: https://rubygems.org/\n"
        "  specs:\n"
        "    nokogiri (1.15.4-x86_64-linux)\n"
        "      racc (~> 1.4)\n"
        "    pg (1.5.4)\n"
        "    rails (7.1.2)\n"
        "    racc (1.7.3)\n"
        "\n"
        "PLATFORMS\n"
        "  x86_64-linux\n"
        "\n"
        "DEPENDENCIES\n"
        "  nokogiri\n"
        "  pg (>= 1.1, < 2.0)\n"
        "  rails (~> 7.1.0)\n"
        "\n"
        "BUNDLED WITH\n"
        "   2.4.22\n"
    )
    (root / "config" / "application.rb").write_text(
        "require_relative 'boot'\nrequire 'rails/all'\nBundler.require(*Rails.groups)\n"
    )
    (root / "app" / "models" / "report.rb").write_text(
        "require 'csv'\nrequire 'nokogiri'\n\nclass Report\n  def parse\n  end\nend\n"
    )
    return root


@pytest.fixture
def maven_project(tmp_path):
    root = tmp_path / "maven"
    (root / "src" / "main" / "java" / "com" / "acme").mkdir(parents=True)
    (root / "pom.xml").write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">\n'
        "  <modelVersion>4.0.0</modelVersion>\n"
        "  <groupId>com.acme</groupId>\n"
        "  <artifactId>service</artifactId>\n"
        "  <version>1.2.0</version>\n"
        "  <properties>\n"
        "    <jackson.version>2.15.2</jackson.version>\n"
        "  </properties>\n"
        "  <dependencies>\n"
        "    <dependency>\n"
        "      <groupId>com.fasterxml.jackson.core</groupId>\n"
        "      <artifactId>jackson-databind</artifactId>\n"
        "      <version>${jackson.version}</version>\n"
        "    </dependency>\n"
        "    <dependency>\n"
        "      <groupId>junit</groupId>\n"
        "      <artifactId>junit</artifactId>\n"
        "      <version>4.13.2</version>\n"
        "      <scope>test</scope>\n"
        "    </dependency>\n"
        "  </dependencies>\n"
        "</project>\n"
    )
    (root / "src" / "main" / "java" / "com" / "acme" / "App.java").write_text(
        "package com.acme;\n\n"
        "import com.fasterxml.jackson.databind.ObjectMapper;\n"
        "import java.util.List;\n\n"
        "public class App {}\n"
    )
    return root


@pytest.fixture
def gradle_project(tmp_path):
    root = tmp_path / "gradle"
    (root / "gradle").mkdir(parents=True)
    (root / "build.gradle.kts").write_text(
        "plugins {\n"
        '    id("org.springframework.boot") version "3.2.0"\n'
        "}\n\n"
        "dependencies {\n"
        '    implementation("org.springframework.boot:spring-boot-starter-web:3.2.0")\n'
        "    implementation(libs.guava)\n"
        '    testImplementation("org.junit.jupiter:junit-jupiter:5.10.0")\n'
        "}\n"
    )
    (root / "settings.gradle.kts").write_text('rootProject.name = "demo"\ninclude(":api", ":core")\n')
    (root / "gradle" / "libs.versions.toml").write_text(
        '[versions]\nguava = "32.1.3-jre"\n\n'
        '[libraries]\nguava = { module = "com.google.guava:guava", version.ref = "guava" }\n'
    )
    return root


@pytest.fixture
def sbt_project(tmp_path):
    root = tmp_path / "sbt"
    (root / "project").mkdir(parents=True)
    (root / "build.sbt").write_text(
        'ThisBuild / scalaVersion := "2.13.12"\n'
        'organization := "com.acme"\n\n'
        "libraryDependencies ++= Seq(\n"
        '  "org.typelevel" %% "cats-core" % "2.10.0",\n'
        '  "org.scalatest" %% "scalatest" % "3.2.17" % Test,\n'
        '  "com.typesafe" % "config" % "1.4.3"\n'
        ")\n"
    )
    (root / "project" / "build.properties").write_text("sbt.version=1.9.7\n")
    return root


# ── agents and tools ────────────────────────────────────────────────────────


class FakeAgent(BaseAgent):
    """Agent that answers from a canned response and records its prompts."""

    name = "fakeAgent"
    description = "Canned answers for tests"

    def __init__(self, response: Optional[AgentResponse] = None, error: Optional[Exception] = None):
        self.llm = None
        self.max_iterations = 1
        self.tools = {}
        self.response = response or AgentResponse(text="fake answer", iterations=1)
        self.error = error
        self.prompts: List[str] = []

    def create_tools(self) -> List[BaseTool]:
        return []

    async def generate(self, prompt, context=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeTool(BaseTool):
    """Tool that returns a fixed ToolResult and records its calls."""

    input_model = None

    def __init__(self, name: str, result: ToolResult):
        self.name = name
        self.result = result
        self.calls: List[dict] = []

    async def execute(self, **kwargs) -> ToolResult:
        self.calls.append(kwargs)
        return self.result


@pytest.fixture
def fake_agent_factory():
    return FakeAgent


@pytest.fixture
def pr_payload():
    """GitHub pulls API payload for a Dependabot lodash bump."""
    return {
        "title": "Bump lodash from 4.17.20 to 4.17.21",
        "state": "open",
        "draft": False,
        "merged": False,
        "mergeable": True,
        "created_at": "2024-08-01T10:00:00Z",
        "updated_at": "2024-08-02T10:00:00Z",
        "html_url": "https://github.com/acme/web/pull/42",
        "diff_url": "https://github.com/acme/web/pull/42.diff",
        "patch_url": "https://github.com/acme/web/pull/42.patch",
        "user": {"login": "dependabot[bot]", "type": "Bot"},
        "labels": [{"name": "dependencies", "color": "0366d6", "description": "Deps"}],
        "commits": 1,
        "additions": 10,
        "deletions": 8,
        "changed_files": 2,
        "base": {
            "ref": "main",
            "sha": "aaa111",
            "repo": {
                "full_name": "acme/web",
                "clone_url": "https://github.com/acme/web.git",
                "ssh_url": "git@github.com:acme/web.git",
            },
        },
        "head": {
            "ref": "dependabot/npm_and_yarn/lodash-4.17.21",
            "sha": "bbb222",
            "repo": {
                "name": "web",
                "full_name": "acme/web",
                "clone_url": "https://github.com/acme/web.git",
                "owner": {"login": "acme"},
            },
        },
    }


@pytest.fixture
def fake_tool_factory():
    return FakeTool
