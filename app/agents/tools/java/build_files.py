"""
JVM build file parsing - pom.xml, Gradle (Groovy and Kotlin DSL), the Gradle
version catalog and build.sbt, plus dependency-tree output of mvn/gradle.
"""

import re
import tomllib
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional


PROPERTY_REF = re.compile(r"\$\{([^}]+)\}")

GRADLE_CONFIGURATIONS = (
    "implementation|api|compileOnly|runtimeOnly|testImplementation|"
    "testRuntimeOnly|testCompileOnly|annotationProcessor|kapt|ksp"
)
GRADLE_DEPENDENCY = re.compile(
    rf"""\b({GRADLE_CONFIGURATIONS})\s*\(?\s*['"]([^'":\s]+):([^'":\s]+)(?::([^'"\s]+))?['"]"""
)
GRADLE_CATALOG_DEPENDENCY = re.compile(rf"""\b({GRADLE_CONFIGURATIONS})\s*\(?\s*libs\.([\w.]+)""")
GRADLE_PLUGIN = re.compile(r"""\bid\s*\(?\s*['"]([^'"]+)['"]\s*\)?(?:\s+version\s+['"]([^'"]+)['"])?""")
GRADLE_INCLUDE = re.compile(r"""include\s*\(?\s*((?:['"][^'"]+['"]\s*,?\s*)+)""")
GRADLE_JAVA_VERSION = re.compile(
    r"""(?:sourceCompatibility\s*=\s*(?:JavaVersion\.VERSION_)?['"]?([\d._]+)|languageVersion\.set\(\s*JavaLanguageVersion\.of\((\d+)\))"""
)

SBT_DEPENDENCY = re.compile(
    r""""([^"]+)"\s*(%%%?|%)\s*"([^"]+)"\s*%\s*"([^"]+)"(?:\s*%\s*"?([A-Za-z]+)"?)?"""
)
SBT_SETTING = r"""(?:ThisBuild\s*/\s*)?{name}\s*:=\s*"([^"]+)\""""
SBT_VERSION = re.compile(r"sbt\.version\s*=\s*(\S+)")

MAVEN_TREE_LINE = re.compile(r"^\[INFO\][\s|+\\-]*?([\w.\-]+):([\w.\-]+):([\w\-]+):(?:[\w\-]+:)?([^:\s]+):(\w+)")
GRADLE_TREE_LINE = re.compile(r"^[|+\\\s-]+---\s+([\w.\-]+):([\w.\-]+)(?::([^\s]+))?(?:\s+->\s+([^\s]+))?")


@dataclass
class JvmDependency:
    """One declared dependency of a Maven, Gradle or sbt build."""
    group_id: str
    artifact_id: str
    version: Optional[str] = None
    scope: Optional[str] = None
    optional: bool = False
    build_tool: str = "maven"
    is_transitive: bool = False
    exclusions: List[str] = field(default_factory=list)
    catalog_reference: Optional[str] = None

    @property
    def coordinates(self) -> str:
        base = f"{self.group_id}:{self.artifact_id}"
        return f"{base}:{self.version}" if self.version else base

    def to_dict(self) -> dict:
        data = asdict(self)
        data["coordinates"] = self.coordinates
        return data


@dataclass
class PomInfo:
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    parent: Optional[str] = None
    modules: List[str] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[JvmDependency] = field(default_factory=list)
    managed_dependencies: List[JvmDependency] = field(default_factory=list)
    plugins: List[str] = field(default_factory=list)
    repositories: List[str] = field(default_factory=list)
    profiles: List[str] = field(default_factory=list)


@dataclass
class GradleBuildInfo:
    is_kotlin_dsl: bool = False
    dependencies: List[JvmDependency] = field(default_factory=list)
    plugins: List[Dict[str, Optional[str]]] = field(default_factory=list)
    java_version: Optional[str] = None
    modules: List[str] = field(default_factory=list)


@dataclass
class SbtBuildInfo:
    scala_version: Optional[str] = None
    sbt_version: Optional[str] = None
    organization: Optional[str] = None
    dependencies: List[JvmDependency] = field(default_factory=list)


def resolve_properties(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    """Substitute `${name}` references; unknown references are left as written."""
    if not value:
        return value
    for _ in range(5):
        resolved = PROPERTY_REF.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if resolved == value:
            break
        value = resolved
    return value


def _ns(root: ET.Element) -> str:
    return root.tag[: root.tag.index("}") + 1] if root.tag.startswith("{") else ""


def _text(element: Optional[ET.Element], path: str, ns: str) -> Optional[str]:
    if element is None:
        return None
    found = element.find("/".join(f"{ns}{part}" for part in path.split("/")))
    if found is None or found.text is None:
        return None
    return found.text.strip()


def _pom_dependencies(container: Optional[ET.Element], ns: str, properties: Dict[str, str]) -> List[JvmDependency]:
    if container is None:
        return []
    dependencies = []
    for node in container.findall(f"{ns}dependency"):
        exclusions = [
            f"{_text(e, 'groupId', ns)}:{_text(e, 'artifactId', ns)}"
            for e in node.findall(f"{ns}exclusions/{ns}exclusion")
        ]
        dependencies.append(JvmDependency(
            group_id=resolve_properties(_text(node, "groupId", ns), properties) or "",
            artifact_id=resolve_properties(_text(node, "artifactId", ns), properties) or "",
            version=resolve_properties(_text(node, "version", ns), properties),
            scope=_text(node, "scope", ns),
            optional=_text(node, "optional", ns) == "true",
            build_tool="maven",
            exclusions=exclusions,
        ))
    return dependencies


def parse_pom(content: str) -> PomInfo:
    """
    Parse a pom.xml.

    Raises:
        ValueError: If the document is not well-formed XML.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ValueError(f"Invalid pom.xml: {e}") from e

    ns = _ns(root)
    parent = root.find(f"{ns}parent")
    info = PomInfo()

    properties_node = root.find(f"{ns}properties")
    if properties_node is not None:
        for child in properties_node:
            info.properties[child.tag.replace(ns, "")] = (child.text or "").strip()

    info.group_id = _text(root, "groupId", ns) or _text(parent, "groupId", ns)
    info.artifact_id = _text(root, "artifactId", ns)
    info.version = _text(root, "version", ns) or _text(parent, "version", ns)
    info.packaging = _text(root, "packaging", ns) or "jar"
    if info.version:
        info.properties.setdefault("project.version", info.version)
    if info.group_id:
        info.properties.setdefault("project.groupId", info.group_id)
    if parent is not None:
        info.parent = f"{_text(parent, 'groupId', ns)}:{_text(parent, 'artifactId', ns)}:{_text(parent, 'version', ns)}"

    info.modules = [m.text.strip() for m in root.findall(f"{ns}modules/{ns}module") if m.text]
    info.dependencies = _pom_dependencies(root.find(f"{ns}dependencies"), ns, info.properties)
    info.managed_dependencies = _pom_dependencies(
        root.find(f"{ns}dependencyManagement/{ns}dependencies"), ns, info.properties
    )
    info.plugins = [
        f"{_text(p, 'groupId', ns) or 'org.apache.maven.plugins'}:{_text(p, 'artifactId', ns)}"
        for p in root.findall(f"{ns}build/{ns}plugins/{ns}plugin")
    ]
    info.repositories = [
        _text(r, "url", ns) or "" for r in root.findall(f"{ns}repositories/{ns}repository")
    ]
    info.profiles = [_text(p, "id", ns) or "" for p in root.findall(f"{ns}profiles/{ns}profile")]
    return info


def parse_version_catalog(content: str) -> Dict[str, JvmDependency]:
    """`gradle/libs.versions.toml` libraries keyed by their `libs.` accessor."""
    data = tomllib.loads(content)
    versions = data.get("versions", {})
    libraries: Dict[str, JvmDependency] = {}
    for alias, spec in data.get("libraries", {}).items():
        if isinstance(spec, str):
            parts = spec.split(":")
            group, name, version = parts[0], parts[1] if len(parts) > 1 else "", parts[2] if len(parts) > 2 else None
        else:
            module = spec.get("module")
            if module:
                group, _, name = module.partition(":")
            else:
                group, name = spec.get("group", ""), spec.get("name", "")
            version = spec.get("version")
            if isinstance(version, dict):
                version = versions.get(version.get("ref", "")) if "ref" in version else version.get("strictly") or version.get("require")
        accessor = alias.replace("-", ".").replace("_", ".")
        libraries[accessor] = JvmDependency(
            group_id=group, artifact_id=name, version=version, build_tool="gradle",
            catalog_reference=f"libs.{accessor}",
        )
    return libraries


def parse_gradle_build(
    content: str,
    is_kotlin_dsl: bool = False,
    catalog: Optional[Dict[str, JvmDependency]] = None,
) -> GradleBuildInfo:
    info = GradleBuildInfo(is_kotlin_dsl=is_kotlin_dsl)
    for configuration, group, name, version in GRADLE_DEPENDENCY.findall(content):
        info.dependencies.append(JvmDependency(
            group_id=group,
            artifact_id=name,
            version=version or None,
            scope=configuration,
            build_tool="gradle",
        ))

    for configuration, accessor in GRADLE_CATALOG_DEPENDENCY.findall(content):
        entry = (catalog or {}).get(accessor)
        if entry is None:
            info.dependencies.append(JvmDependency(
                group_id="libs", artifact_id=accessor, scope=configuration,
                build_tool="gradle", catalog_reference=f"libs.{accessor}",
            ))
        else:
            info.dependencies.append(JvmDependency(
                group_id=entry.group_id, artifact_id=entry.artifact_id, version=entry.version,
                scope=configuration, build_tool="gradle", catalog_reference=entry.catalog_reference,
            ))

    info.plugins = [{"id": pid, "version": version or None} for pid, version in GRADLE_PLUGIN.findall(content)]
    java = GRADLE_JAVA_VERSION.search(content)
    if java:
        info.java_version = java.group(1) or java.group(2)
    return info


def parse_gradle_settings(content: str) -> List[str]:
    """Subprojects listed by `include` in settings.gradle(.kts)."""
    modules: List[str] = []
    for match in GRADLE_INCLUDE.finditer(content):
        for name in re.findall(r"""['"]([^'"]+)['"]""", match.group(1)):
            modules.append(name.lstrip(":"))
    return modules


def _sbt_setting(content: str, name: str) -> Optional[str]:
    match = re.search(SBT_SETTING.format(name=name), content)
    return match.group(1) if match else None


def parse_sbt_build(content: str, build_properties: Optional[str] = None) -> SbtBuildInfo:
    info = SbtBuildInfo(
        scala_version=_sbt_setting(content, "scalaVersion"),
        organization=_sbt_setting(content, "organization"),
    )
    if build_properties:
        version = SBT_VERSION.search(build_properties)
        info.sbt_version = version.group(1) if version else None

    for organization, operator, name, revision, configuration in SBT_DEPENDENCY.findall(content):
        info.dependencies.append(JvmDependency(
            # %% appends the Scala binary version to the artifact
            group_id=organization,
            artifact_id=name if operator == "%" else f"{name}_{_scala_binary(info.scala_version)}",
            version=revision,
            scope=(configuration or "compile").lower(),
            build_tool="sbt",
        ))
    return info


def _scala_binary(scala_version: Optional[str]) -> str:
    if not scala_version:
        return "2.13"
    parts = scala_version.split(".")
    return parts[0] if parts[0] == "3" else ".".join(parts[:2])


def parse_maven_tree(output: str) -> List[JvmDependency]:
    """`mvn dependency:tree` lines below the root artifact become transitive entries."""
    dependencies: List[JvmDependency] = []
    for line in output.splitlines():
        if "+-" not in line and "\\-" not in line:
            continue
        match = MAVEN_TREE_LINE.match(line)
        if match:
            group, artifact, _packaging, version, scope = match.groups()
            dependencies.append(JvmDependency(
                group_id=group, artifact_id=artifact, version=version, scope=scope,
                build_tool="maven", is_transitive=True,
            ))
    return dependencies


def parse_gradle_tree(output: str) -> List[JvmDependency]:
    """`gradle dependencies` lines; `a -> b` reports the version Gradle selected."""
    dependencies: Dict[str, JvmDependency] = {}
    for line in output.splitlines():
        match = GRADLE_TREE_LINE.match(line)
        if not match:
            continue
        group, artifact, requested, selected = match.groups()
        key = f"{group}:{artifact}"
        if key not in dependencies:
            dependencies[key] = JvmDependency(
                group_id=group, artifact_id=artifact, version=selected or requested,
                build_tool="gradle", is_transitive=True,
            )
    return list(dependencies.values())
