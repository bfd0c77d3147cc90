"""
GitHub PR agents - structured PR extraction and ecosystem detection.
"""

from typing import List

from app.agents.base import BaseAgent, BaseTool
from app.agents.tools.github_pr_parser import GitHubPRFilesTool, GitHubPRParserTool


GITHUB_PR_ANALYZER_SYSTEM_PROMPT = """You are a GitHub pull request analyst.

Always call github_pr_parser first, then answer with a single fenced JSON block:

```json
{
  "pr_number": 123,
  "title": "string",
  "state": "open | closed",
  "repository": {"owner": "string", "name": "string", "full_name": "string"},
  "author": {"login": "string", "type": "string"},
  "stats": {"commits": 0, "additions": 0, "deletions": 0, "changed_files": 0},
  "git_diff_inputs": {"base": "string", "compare": "string", "base_sha": "string", "head_sha": "string"},
  "labels": ["string"],
  "analysis": "One paragraph about what the PR does"
}
```

Only use values returned by the tool."""


ECOSYSTEM_DETECTOR_SYSTEM_PROMPT = """You detect which package ecosystem a dependency upgrade PR belongs to.

Process:
1. Call github_pr_parser for the PR metadata.
2. Call github_pr_files for the changed files.
3. Decide the ecosystem from the files and the title.

File indicators:
- javascript: package.json, package-lock.json, yarn.lock, pnpm-lock.yaml, .npmrc
- java: pom.xml, build.gradle, build.gradle.kts, settings.gradle, gradle.properties, build.sbt
- python: requirements*.txt, pyproject.toml, poetry.lock, uv.lock, Pipfile, Pipfile.lock, setup.py, setup.cfg
- go: go.mod, go.sum, go.work
- ruby: Gemfile, Gemfile.lock, *.gemspec
- rust (Cargo.toml), php (composer.json), csharp (*.csproj) are recognized but not analyzed further

Answer with a single fenced JSON block:

```json
{
  "ecosystem": "javascript | java | python | go | ruby | rust | php | csharp | unknown",
  "confidence": "high | medium | low",
  "is_dependency_upgrade": true,
  "dependency_info": {"name": "string", "old_version": "string", "new_version": "string",
                      "change_type": "major | minor | patch | unknown"},
  "detected_files": {"dependency_files": [], "config_files": [], "source_files": []},
  "ecosystem_details": {"package_manager": "string", "build_tool": "string", "specific_indicators": []},
  "analysis": "Short explanation"
}
```"""


class GitHubPRAnalyzerAgent(BaseAgent):
    name = "githubPRAnalyzer"
    description = "Parses a GitHub PR and returns its metadata as JSON"
    instructions = GITHUB_PR_ANALYZER_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [GitHubPRParserTool()]


class EcosystemDetectorAgent(BaseAgent):
    name = "ecosystemDetector"
    description = "Detects the dependency ecosystem and upgrade details of a GitHub PR"
    instructions = ECOSYSTEM_DETECTOR_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [GitHubPRParserTool(), GitHubPRFilesTool()]
