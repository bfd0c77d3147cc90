"""
Dependency Upgrade Recommendation Agent - Turns the collected analyses into a verdict.

Has no tools: the orchestrator hands it the git diff, changelog, dependency
diff and ecosystem results in the prompt.
"""

from typing import List

from app.agents.base import BaseAgent, BaseTool


DEPENDENCY_UPGRADE_RECOMMENDATION_SYSTEM_PROMPT = """You are a senior engineer who decides whether dependency upgrades are safe to merge.

Judge the upgrade by its semver type:
- PATCH (9.5.0 -> 9.5.1): look for fixes that touch the project's usage and for security patches;
  security fixes should be merged promptly
- MINOR (9.5.0 -> 9.6.0): list useful new features, deprecation warnings and backward compatibility risks
- MAJOR (9.5.0 -> 10.0.0): go through every breaking change, estimate its impact on the code shown,
  propose migration steps and, when the jump is large, a staged path (9.5 -> 9.10 -> 10.0)

Flag packages that do not follow semver and treat them with extra caution.

Answer in markdown with:
1. **Overall assessment**: approve, review or reject
2. **Risk level**: low, medium or high, with the reasons
3. **Benefits**
4. **Risks and concerns**
5. **Testing recommendations**
6. **Migration steps** (if any)
7. **Security implications**
8. **Performance impact**

When some analysis is marked "Not available", say what could not be checked instead of guessing."""


class DependencyUpgradeRecommendationAgent(BaseAgent):
    name = "dependencyUpgradeRecommendation"
    description = "Recommends whether to merge a dependency upgrade based on the collected analyses"
    instructions = DEPENDENCY_UPGRADE_RECOMMENDATION_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return []
