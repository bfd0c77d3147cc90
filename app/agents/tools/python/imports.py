"""
Python import parsing and classification.

    import a.b as c          import            ["c"]
    import a, b              import            ["a"], ["b"]
    from x import (a, b as c) from-import      ["a", "c"]
    __import__('x')          __import__
    importlib.import_module('x')  importlib-import
"""

import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional


SIMPLE_IMPORT = re.compile(r"^import\s+([\w.]+)(?:\s+as\s+(\w+))?$")
MULTI_IMPORT = re.compile(r"^import\s+(.+)$")
MODULE_ALIAS = re.compile(r"^([\w.]+)(?:\s+as\s+(\w+))?$")
FROM_IMPORT = re.compile(r"^from\s+([\w.]+)\s+import\s+(.+)$")
BINDING_ALIAS = re.compile(r"^(\w+)\s+as\s+(\w+)$")
DUNDER_IMPORT = re.compile(r"""__import__\s*\(\s*['"]([^'"]+)['"]""")
IMPORTLIB_IMPORT = re.compile(r"""importlib\.import_module\s*\(\s*['"]([^'"]+)['"]""")

CONDITIONAL_STARTS = ("try:", "if ", "except", "elif ", "else:")

STDLIB_MODULES = frozenset({
    "__future__", "abc", "argparse", "array", "ast", "asyncio", "base64", "bisect",
    "builtins", "bz2", "calendar", "cmath", "codecs", "collections", "concurrent",
    "configparser", "contextlib", "contextvars", "copy", "cProfile", "csv", "ctypes",
    "dataclasses", "datetime", "dbm", "decimal", "difflib", "doctest", "email", "enum",
    "errno", "fnmatch", "fractions", "functools", "gc", "getpass", "glob", "gzip",
    "hashlib", "heapq", "hmac", "html", "http", "importlib", "inspect", "io",
    "ipaddress", "itertools", "json", "logging", "lzma", "math", "mimetypes",
    "multiprocessing", "numbers", "operator", "os", "pathlib", "pdb", "pickle",
    "platform", "pprint", "profile", "queue", "random", "re", "secrets", "select",
    "shlex", "shutil", "signal", "socket", "sqlite3", "ssl", "statistics", "string",
    "struct", "subprocess", "sys", "tarfile", "tempfile", "textwrap", "threading",
    "time", "timeit", "tomllib", "traceback", "types", "typing", "unittest", "urllib",
    "uuid", "warnings", "weakref", "xml", "zipfile", "zlib", "zoneinfo",
})


@dataclass
class PythonImport:
    """One import statement of a Python module."""
    type: str
    source: str
    specifier: str
    line: int
    raw_statement: str
    imported_bindings: List[str] = field(default_factory=list)
    alias: Optional[str] = None
    is_conditional: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def is_conditional_context(lines: List[str], index: int) -> bool:
    """True when the nearest enclosing, less-indented statement is try/if/except."""
    current = _indent(lines[index])
    if current == 0:
        return False
    for i in range(index - 1, -1, -1):
        stripped = lines[i].strip()
        if not stripped or stripped.startswith("#"):
            continue
        if _indent(lines[i]) < current:
            return stripped.startswith(CONDITIONAL_STARTS)
    return False


def parse_from_bindings(names: str) -> List[str]:
    cleaned = names.replace("(", "").replace(")", "")
    if "*" in cleaned:
        return ["*"]
    bindings = []
    for part in cleaned.split(","):
        part = part.strip()
        if not part:
            continue
        alias = BINDING_ALIAS.match(part)
        bindings.append(alias.group(2) if alias else part)
    return bindings


def strip_statement(line: str) -> str:
    """Drop a trailing `# comment` and `;` from an import statement."""
    if line.startswith(("import ", "from ")):
        line = line.split("#", 1)[0].rstrip().rstrip(";").rstrip()
    return line


def parse_python_imports(content: str) -> List[PythonImport]:
    imports: List[PythonImport] = []
    lines = content.splitlines()

    for index, raw in enumerate(lines):
        line = strip_statement(raw.strip())
        if not line or line.startswith("#"):
            continue
        number = index + 1
        conditional = is_conditional_context(lines, index)

        simple = SIMPLE_IMPORT.match(line)
        if simple:
            source, alias = simple.groups()
            imports.append(PythonImport(
                type="import",
                source=source,
                specifier=source,
                imported_bindings=[alias or source.split(".")[0]],
                alias=alias,
                is_conditional=conditional,
                line=number,
                raw_statement=line,
            ))
            continue

        from_import = FROM_IMPORT.match(line)
        if from_import:
            source, names = from_import.groups()
            imports.append(PythonImport(
                type="from-import",
                source=source,
                specifier=f"{source}.{names}",
                imported_bindings=parse_from_bindings(names),
                is_conditional=conditional,
                line=number,
                raw_statement=line,
            ))
            continue

        multi = MULTI_IMPORT.match(line)
        if multi and "," in multi.group(1):
            for module in multi.group(1).split(","):
                match = MODULE_ALIAS.match(module.strip())
                if not match:
                    continue
                source, alias = match.groups()
                imports.append(PythonImport(
                    type="import",
                    source=source,
                    specifier=source,
                    imported_bindings=[alias or source.split(".")[0]],
                    alias=alias,
                    is_conditional=conditional,
                    line=number,
                    raw_statement=line,
                ))
            continue

        for kind, pattern in (("__import__", DUNDER_IMPORT), ("importlib-import", IMPORTLIB_IMPORT)):
            match = pattern.search(line)
            if match:
                imports.append(PythonImport(
                    type=kind,
                    source=match.group(1),
                    specifier=match.group(1),
                    is_conditional=conditional,
                    line=number,
                    raw_statement=line,
                ))

    return imports


def top_level_module(source: str) -> str:
    """'a.b.c' -> 'a'; relative imports are returned unchanged."""
    if source.startswith("."):
        return source
    return source.split(".")[0]


def is_standard_library(module: str) -> bool:
    return module in STDLIB_MODULES


def is_local_module(source: str, project_root: Path) -> bool:
    """Relative imports, or dotted paths that resolve to files under the project."""
    if source.startswith("."):
        return True
    current = project_root
    parts = source.split(".")
    for i, part in enumerate(parts):
        if (current / f"{part}.py").is_file() or (current / part / "__init__.py").is_file():
            if i == len(parts) - 1:
                return True
            current = current / part
        else:
            break
    return False


def normalize_package_name(name: str) -> str:
    """PEP 503-ish normalization used to match imports with declarations."""
    return re.sub(r"[-_.]+", "-", name).lower()
