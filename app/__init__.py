"""
Evergreen Dependency Review
===========================

Reviews dependency upgrade pull requests: parses the PR, summarizes the
diff and the upstream changelog, analyzes how the project uses the
dependency, and recommends whether to merge.

Components:
- agents: LLM agents, their tools and the review orchestrator
- services: GitHub, package registries, LLM and subprocess helpers
- api: FastAPI endpoints
- models: Pydantic data models
- core: Configuration and dependencies
"""

__version__ = "1.0.0"
