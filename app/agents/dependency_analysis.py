"""
Dependency Analysis Agents - One per ecosystem.

Each agent pairs its ecosystem's package manager detector and dependency
analyzer with the package version comparison tool, and shares one
analysis playbook; only the ecosystem expertise differs.
"""

from typing import Dict, List, Optional, Type

from app.agents.base import BaseAgent, BaseTool
from app.agents.tools.go import GoDependencyAnalysisTool, GoPackageManagerDetectorTool
from app.agents.tools.java import JavaBuildToolDetectorTool, JavaDependencyAnalysisTool
from app.agents.tools.javascript import JSDependencyAnalysisTool, JSPackageManagerDetectorTool
from app.agents.tools.python import PythonDependencyAnalysisTool, PythonPackageManagerDetectorTool
from app.agents.tools.ruby import RubyDependencyAnalysisTool, RubyPackageManagerDetectorTool
from app.agents.tools.version_comparison import PackageVersionComparisonTool
from app.services.llm_service import LLMService


ANALYSIS_PLAYBOOK = """
## Process
1. Detect the package manager / build tool and the project layout.
2. Run the dependency analysis to see where and how often each dependency is used.
3. For an upgrade, run package_version_comparison for the old and new version.
4. Relate the changes to the usage you found: which files and patterns are affected.

## Output
- Prioritized, actionable findings with the files they concern
- Criticality of the upgraded dependency and why
- Breaking changes that touch the project's actual usage
- Security, performance and maintenance concerns
- Concrete next steps, including tests to run

If a tool fails (for example the repository is not checked out locally), continue with
what the other tools and the version numbers tell you and say what could not be checked."""


JS_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT = """You are a senior JavaScript/TypeScript engineer and dependency expert.

Expertise: ES module, CommonJS, dynamic and type-only imports; npm, yarn, pnpm and bun;
workspaces and monorepos; lock files; tree-shaking and bundle size; supply chain security;
dependencies vs devDependencies vs peerDependencies.
""" + ANALYSIS_PLAYBOOK

JAVA_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT = """You are a senior JVM engineer and dependency expert.

Expertise: Maven scopes, dependencyManagement and BOMs; Gradle configurations, version catalogs
and the Kotlin DSL; sbt and Scala cross-versioning; transitive conflicts and exclusions;
SNAPSHOT and dynamic versions; Spring, Jakarta and logging stacks.
""" + ANALYSIS_PLAYBOOK

GO_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT = """You are a senior Go engineer and module expert.

Expertise: go.mod requirements, indirect dependencies, replace and exclude directives;
go.work workspaces; minimal version selection; major version suffixes (/v2); vendoring;
build tags and cgo; the golang.org/x modules.
""" + ANALYSIS_PLAYBOOK

PYTHON_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT = """You are a senior Python engineer and packaging expert.

Expertise: pip, Poetry, uv, PDM, Pipenv and conda; pyproject.toml, requirements files and lock
files; optional dependency groups; virtual environments; conditional and lazy imports;
distribution vs import names; version specifiers and PEP 440.
""" + ANALYSIS_PLAYBOOK

RUBY_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT = """You are a senior Ruby engineer and Bundler expert.

Expertise: Gemfile groups and sources, Gemfile.lock, pessimistic (~>) constraints, git-sourced
gems, Bundler.require, Rails and its component gems, rbenv/rvm/asdf version pins, bundle audit.
""" + ANALYSIS_PLAYBOOK


class JSDependencyAnalysisAgent(BaseAgent):
    name = "jsDependencyAnalysis"
    description = "Analyzes JavaScript/TypeScript dependency usage and upgrades"
    instructions = JS_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [JSPackageManagerDetectorTool(), JSDependencyAnalysisTool(), PackageVersionComparisonTool()]


class JavaDependencyAnalysisAgent(BaseAgent):
    name = "javaDependencyAnalysis"
    description = "Analyzes Maven, Gradle and sbt dependencies and upgrades"
    instructions = JAVA_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [JavaBuildToolDetectorTool(), JavaDependencyAnalysisTool(), PackageVersionComparisonTool()]


class GoDependencyAnalysisAgent(BaseAgent):
    name = "goDependencyAnalysis"
    description = "Analyzes Go module dependencies and upgrades"
    instructions = GO_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [GoPackageManagerDetectorTool(), GoDependencyAnalysisTool(), PackageVersionComparisonTool()]


class PythonDependencyAnalysisAgent(BaseAgent):
    name = "pythonDependencyAnalysis"
    description = "Analyzes Python dependency usage and upgrades"
    instructions = PYTHON_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [
            PythonPackageManagerDetectorTool(),
            PythonDependencyAnalysisTool(),
            PackageVersionComparisonTool(),
        ]


class RubyDependencyAnalysisAgent(BaseAgent):
    name = "rubyDependencyAnalysis"
    description = "Analyzes Ruby gem usage and upgrades"
    instructions = RUBY_DEPENDENCY_ANALYSIS_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [RubyPackageManagerDetectorTool(), RubyDependencyAnalysisTool(), PackageVersionComparisonTool()]


DEPENDENCY_ANALYSIS_AGENTS: Dict[str, Type[BaseAgent]] = {
    "javascript": JSDependencyAnalysisAgent,
    "typescript": JSDependencyAnalysisAgent,
    "java": JavaDependencyAnalysisAgent,
    "go": GoDependencyAnalysisAgent,
    "python": PythonDependencyAnalysisAgent,
    "ruby": RubyDependencyAnalysisAgent,
}


def get_dependency_analysis_agent(ecosystem: Optional[str], llm: LLMService) -> Optional[BaseAgent]:
    """The analysis agent for an ecosystem, or None when the ecosystem has none."""
    agent_class = DEPENDENCY_ANALYSIS_AGENTS.get((ecosystem or "").lower())
    if agent_class is None:
        return None
    return agent_class(llm)
