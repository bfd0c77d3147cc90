"""
JavaScript/TypeScript import parsing.

Recognized forms, one statement per line:

    import React from 'react'               static-import      ["React"]
    import type { FC } from 'react'         import-type        ["FC"]
    import './polyfills'                    side-effect-import []
    const m = await import('lodash')        dynamic-import
    const fs = require('fs')                require
    require.resolve('x')                    require-resolve
    export { a } from './a'                 export-from
"""

import re
from dataclasses import dataclass, field, asdict
from typing import List, Optional


STATIC_IMPORT = re.compile(
    r"""^\s*import\s+(?:type\s+)?(?:(\*\s+as\s+\w+|\{[^}]*\}|[\w$]+)"""
    r"""(?:\s*,\s*(\{[^}]*\}|\*\s+as\s+\w+))?\s+from\s+)?['"`]([^'"`]+)['"`]"""
)
TYPE_IMPORT = re.compile(r"^\s*import\s+type\s+")
DYNAMIC_IMPORT = re.compile(r"""import\s*\(\s*['"`]([^'"`]+)['"`]\s*\)""")
REQUIRE = re.compile(r"""require\s*\(\s*['"`]([^'"`]+)['"`]\s*\)""")
REQUIRE_RESOLVE = re.compile(r"""require\.resolve\s*\(\s*['"`]([^'"`]+)['"`]\s*\)""")
EXPORT_FROM = re.compile(
    r"""^\s*export\s+(?:\*|(?:type\s+)?\{[^}]*\}|\w+)\s+from\s+['"`]([^'"`]+)['"`]"""
)
TYPE_EXPORT = re.compile(r"export\s+type\s+")
NAMESPACE = re.compile(r"\*\s+as\s+(\w+)")
ALIAS = re.compile(r"(\w+)\s+as\s+(\w+)")


@dataclass
class ImportUsage:
    """One import-like statement found in a source file."""
    type: str
    source: str
    specifier: str
    line: int
    column: int
    raw_statement: str
    imported_bindings: List[str] = field(default_factory=list)
    is_type_only: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _named_bindings(group: str) -> List[str]:
    names = []
    for part in group.replace("{", "").replace("}", "").split(","):
        cleaned = part.strip()
        if not cleaned:
            continue
        alias = ALIAS.search(cleaned)
        names.append(alias.group(2) if alias else cleaned)
    return names


def parse_import_bindings(first: Optional[str], second: Optional[str] = None) -> List[str]:
    """Local names introduced by `import <first>, <second> from ...`."""
    bindings: List[str] = []
    if first:
        if "*" in first:
            namespace = NAMESPACE.search(first)
            if namespace:
                bindings.append(namespace.group(1))
        elif "{" in first:
            bindings.extend(_named_bindings(first))
        else:
            bindings.append(first.strip())
    # only a named group counts after a default binding
    if second and "{" in second:
        bindings.extend(_named_bindings(second))
    return bindings


def parse_js_imports(content: str) -> List[ImportUsage]:
    """All imports, requires and re-exports in a JS/TS source, in line order."""
    imports: List[ImportUsage] = []

    for number, line in enumerate(content.splitlines(), start=1):
        static = STATIC_IMPORT.match(line)
        if static:
            source = static.group(3)
            bindings = parse_import_bindings(static.group(1), static.group(2))
            is_type_only = bool(TYPE_IMPORT.match(line))
            if is_type_only:
                kind = "import-type"
            elif not bindings:
                kind = "side-effect-import"
            else:
                kind = "static-import"
            imports.append(ImportUsage(
                type=kind,
                source=source,
                specifier=source,
                imported_bindings=bindings,
                is_type_only=is_type_only,
                line=number,
                column=line.find("import"),
                raw_statement=line.strip(),
            ))
            continue

        for match in DYNAMIC_IMPORT.finditer(line):
            imports.append(ImportUsage(
                type="dynamic-import",
                source=match.group(1),
                specifier=match.group(1),
                line=number,
                column=match.start(),
                raw_statement=match.group(0),
            ))

        for kind, pattern in (("require", REQUIRE), ("require-resolve", REQUIRE_RESOLVE)):
            for match in pattern.finditer(line):
                imports.append(ImportUsage(
                    type=kind,
                    source=match.group(1),
                    specifier=match.group(1),
                    line=number,
                    column=match.start(),
                    raw_statement=match.group(0),
                ))

        export = EXPORT_FROM.match(line)
        if export:
            source = export.group(1).strip()
            imports.append(ImportUsage(
                type="export-from",
                source=source,
                specifier=source,
                is_type_only=bool(TYPE_EXPORT.search(line)),
                line=number,
                column=line.find("export"),
                raw_statement=export.group(0).strip(),
            ))

    return imports


def is_external_dependency(source: str) -> bool:
    """Bare specifiers are packages; relative, absolute and node: ones are not."""
    return not source.startswith((".", "/", "node:"))


def extract_package_name(specifier: str) -> str:
    """'@scope/pkg/sub' -> '@scope/pkg', 'lodash/fp' -> 'lodash'."""
    parts = specifier.split("/")
    if specifier.startswith("@"):
        return "/".join(parts[:2]) if len(parts) >= 2 else specifier
    return parts[0]
