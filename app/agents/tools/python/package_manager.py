"""
Python package manager detection (pip, uv, poetry, pdm, conda, pipenv).

FLOW:
1. Lock files                  -> primary manager, strongest evidence
2. pyproject.toml tool tables  -> [tool.poetry], [tool.uv], [tool.pdm], [project]
3. Config files                -> environment.yml, poetry.toml, pip.conf
4. Dependency files            -> requirements*.txt, Pipfile, setup.py
5. Virtual environment and Python version
6. Confidence from the weight of the evidence
"""

import logging
import re
import tomllib
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


LOCK_FILES = (
    ("poetry.lock", "poetry"),
    ("uv.lock", "uv"),
    ("pdm.lock", "pdm"),
    ("Pipfile.lock", "pipenv"),
    ("conda-lock.yml", "conda"),
    ("environment.lock.yml", "conda"),
)

PYPROJECT_TOOLS = (
    ("poetry", "poetry"),
    ("uv", "uv"),
    ("pdm", "pdm"),
)

CONFIG_FILES = (
    (("pip.conf", "pip.ini", ".pip.conf"), "pip"),
    (("conda.yaml", "environment.yml", "environment.yaml"), "conda"),
    (("poetry.toml",), "poetry"),
)

DEPENDENCY_FILES = (
    ("Pipfile", "pipenv"),
    ("setup.py", "pip"),
    ("setup.cfg", "pip"),
    ("constraints.txt", "pip"),
)

VENV_DIRS = (
    (".venv", "venv"),
    ("venv", "venv"),
    ("env", "virtualenv"),
    (".conda", "conda"),
)

MANAGED_VENVS = {"poetry": "poetry-venv", "pipenv": "pipenv-venv", "uv": "uv-venv", "pdm": "pdm-venv"}

PYVENV_VERSION = re.compile(r"version\s*=\s*(\S+)")
RUNTIME_VERSION = re.compile(r"python-([0-9.]+)")
REQUIRES_PYTHON = re.compile(r"([0-9]+(?:\.[0-9]+)*)")


@dataclass
class VirtualEnvironment:
    type: str = "none"
    path: Optional[str] = None
    python_version: Optional[str] = None


@dataclass
class PythonPackageManagerResult:
    package_manager: Optional[str] = None
    secondary_managers: List[str] = field(default_factory=list)
    virtual_environment: VirtualEnvironment = field(default_factory=VirtualEnvironment)
    lock_files: List[str] = field(default_factory=list)
    config_files: List[str] = field(default_factory=list)
    dependency_files: List[str] = field(default_factory=list)
    pyproject_sections: List[str] = field(default_factory=list)
    python_version: Optional[str] = None
    confidence: str = "low"

    def add_manager(self, manager: str) -> None:
        """First manager seen becomes primary; later distinct ones are secondary."""
        if self.package_manager is None:
            self.package_manager = manager
        elif manager != self.package_manager and manager not in self.secondary_managers:
            self.secondary_managers.append(manager)

    def to_dict(self) -> dict:
        return asdict(self)


def load_pyproject(root: Path) -> Optional[Dict[str, Any]]:
    """Parsed pyproject.toml, or None when absent or malformed."""
    path = root / "pyproject.toml"
    if not path.is_file():
        return None
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Could not parse {path}: {e}")
        return None


def _detect_virtualenv(root: Path, result: PythonPackageManagerResult) -> None:
    venv = result.virtual_environment
    for dirname, venv_type in VENV_DIRS:
        path = root / dirname
        if not path.is_dir():
            continue
        cfg = path / "pyvenv.cfg"
        markers = (path / "bin" / "python", path / "Scripts" / "python.exe", cfg, path / "conda-meta")
        if not any(marker.exists() for marker in markers):
            continue
        venv.type = venv_type
        venv.path = str(path)
        if cfg.is_file():
            match = PYVENV_VERSION.search(cfg.read_text(encoding="utf-8", errors="replace"))
            if match:
                venv.python_version = match.group(1)
        break

    if result.package_manager in MANAGED_VENVS and venv.type == "none":
        venv.type = MANAGED_VENVS[result.package_manager]
    if result.package_manager == "conda" or "conda" in result.secondary_managers:
        venv.type = "conda"


def _detect_python_version(root: Path, pyproject: Optional[dict], result: PythonPackageManagerResult) -> None:
    version_file = root / ".python-version"
    if version_file.is_file():
        version = version_file.read_text(encoding="utf-8").strip()
        if version:
            result.python_version = version
            return

    runtime = root / "runtime.txt"
    if runtime.is_file():
        match = RUNTIME_VERSION.search(runtime.read_text(encoding="utf-8"))
        if match:
            result.python_version = match.group(1)
            return

    requires = ((pyproject or {}).get("project") or {}).get("requires-python")
    if requires:
        match = REQUIRES_PYTHON.search(requires)
        if match:
            result.python_version = match.group(1)
            return

    result.python_version = result.virtual_environment.python_version


def _score_confidence(result: PythonPackageManagerResult) -> str:
    score = 0
    if result.lock_files:
        score += 3
    if result.pyproject_sections:
        score += 2
    if result.config_files:
        score += 1
    if result.dependency_files:
        score += 1
    if result.virtual_environment.type != "none":
        score += 1

    if score >= 4:
        return "high"
    if score >= 2 or result.lock_files or result.pyproject_sections:
        return "medium"
    return "low"


def detect_python_package_manager(project_path: str) -> PythonPackageManagerResult:
    """
    Inspect a project for Python packaging evidence.

    Raises:
        FileNotFoundError: If project_path does not exist.
    """
    root = Path(project_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")

    result = PythonPackageManagerResult()

    for filename, manager in LOCK_FILES:
        if (root / filename).is_file():
            result.lock_files.append(filename)
            result.add_manager(manager)

    pyproject = load_pyproject(root)
    if pyproject is not None:
        result.config_files.append("pyproject.toml")
        tools = pyproject.get("tool") or {}
        for table, manager in PYPROJECT_TOOLS:
            if table in tools:
                result.pyproject_sections.append(f"tool.{table}")
                result.add_manager(manager)
        if "project" in pyproject:
            result.pyproject_sections.append("project")
            if result.package_manager is None:
                result.add_manager("pip")

    for filenames, manager in CONFIG_FILES:
        for filename in filenames:
            if (root / filename).is_file():
                result.config_files.append(filename)
                result.add_manager(manager)

    requirement_files = sorted(p.name for p in root.glob("requirements*.txt"))
    requirement_files += [name for name in ("requirements.in",) if (root / name).is_file()]
    for filename in requirement_files:
        result.dependency_files.append(filename)
        result.add_manager("pip")
    for filename, manager in DEPENDENCY_FILES:
        if (root / filename).is_file():
            result.dependency_files.append(filename)
            result.add_manager(manager)

    _detect_virtualenv(root, result)
    _detect_python_version(root, pyproject, result)
    result.confidence = _score_confidence(result)

    logger.info(f"Detected Python package manager {result.package_manager} ({result.confidence}) in {root}")
    return result


class PythonPackageManagerInput(BaseModel):
    project_path: str = Field(".", description="Path to the project directory to analyze")


class PythonPackageManagerDetectorTool(BaseTool):
    name = "python_package_manager_detector"
    description = (
        "Detect which Python package manager (pip, uv, poetry, pdm, conda, pipenv) a project "
        "uses, its virtual environment and its Python version."
    )
    input_model = PythonPackageManagerInput

    async def execute(self, project_path: str = ".") -> ToolResult:
        try:
            result = detect_python_package_manager(project_path)
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        return ToolResult(success=True, data=result.to_dict())
