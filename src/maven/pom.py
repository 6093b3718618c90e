"""POM parsing and effective-model building.

``parse_pom`` reads one POM document as written. ``build_effective`` merges
it with its (already effective) parent, interpolates ``${...}`` properties
and applies dependency and plugin management, the parts of Maven's model
builder that decide which coordinates a build needs.
"""
from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from constants import Constants, Scopes
from resolution.models import (
    ArtifactIdentity,
    Dependency,
    Exclusion,
    ManagedDependency,
    Plugin,
    Repository,
    merge_repositories,
)

logger = logging.getLogger(__name__)

_PROPERTY = re.compile(r"\$\{([^}]+)\}")
_MAX_INTERPOLATION_PASSES = 10


class PomParseError(ValueError):
    """The document is not a usable POM."""


@dataclass(frozen=True)
class ParentRef:
    group_id: str
    artifact_id: str
    version: str
    relative_path: str = "../pom.xml"

    def identity(self) -> ArtifactIdentity:
        return ArtifactIdentity(self.group_id, self.artifact_id, "pom", None, self.version)


@dataclass(frozen=True)
class PomDependency:
    """A <dependency> element, possibly with unresolved properties."""

    group_id: str
    artifact_id: str
    version: Optional[str] = None
    type: str = "jar"
    classifier: Optional[str] = None
    scope: Optional[str] = None
    optional: bool = False
    exclusions: Tuple[Tuple[str, str], ...] = ()

    @property
    def management_key(self) -> Tuple[str, str, str, Optional[str]]:
        return (self.group_id, self.artifact_id, self.type, self.classifier)

    def identity(self) -> ArtifactIdentity:
        return ArtifactIdentity.from_type(
            self.group_id, self.artifact_id, self.version or "", self.type, self.classifier
        )

    def to_dependency(self) -> Dependency:
        return Dependency(
            identity=self.identity(),
            scope=self.scope or Scopes.COMPILE.value,
            optional=self.optional,
            exclusions=frozenset(Exclusion(g, a) for g, a in self.exclusions),
        )

    def to_managed(self) -> ManagedDependency:
        return ManagedDependency(
            group_id=self.group_id,
            artifact_id=self.artifact_id,
            type=self.type,
            classifier=self.classifier,
            version=self.version,
            scope=self.scope,
            exclusions=frozenset(Exclusion(g, a) for g, a in self.exclusions),
        )


@dataclass(frozen=True)
class PomPlugin:
    group_id: str
    artifact_id: str
    version: Optional[str] = None
    dependencies: Tuple[PomDependency, ...] = ()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.group_id, self.artifact_id)

    def identity(self) -> ArtifactIdentity:
        return ArtifactIdentity(self.group_id, self.artifact_id, "jar", None, self.version or "")

    def to_plugin(self) -> Plugin:
        return Plugin(
            identity=self.identity(),
            dependencies=tuple(dep.to_dependency() for dep in self.dependencies),
        )


@dataclass
class PomModel:
    """One POM document as written."""

    artifact_id: str
    group_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    parent: Optional[ParentRef] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[PomDependency] = field(default_factory=list)
    dependency_management: List[PomDependency] = field(default_factory=list)
    plugins: List[PomPlugin] = field(default_factory=list)
    plugin_management: List[PomPlugin] = field(default_factory=list)
    extensions: List[PomPlugin] = field(default_factory=list)
    repositories: List[Repository] = field(default_factory=list)
    plugin_repositories: List[Repository] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)


@dataclass
class EffectivePom:
    """A POM merged with its parent chain, interpolated and managed."""

    group_id: str
    artifact_id: str
    version: str
    packaging: str
    parent: Optional[ParentRef]
    properties: Dict[str, str]
    dependencies: List[PomDependency]
    dependency_management: Dict[Tuple[str, str, str, Optional[str]], PomDependency]
    plugins: List[PomPlugin]
    plugin_management: Dict[Tuple[str, str], PomPlugin]
    extensions: List[PomPlugin]
    repositories: List[Repository]
    plugin_repositories: List[Repository]
    modules: List[str]
    # Parent and imported BOM POMs this model was built from
    descriptor_poms: List[ArtifactIdentity] = field(default_factory=list)

    def identity(self) -> ArtifactIdentity:
        return ArtifactIdentity(self.group_id, self.artifact_id, "pom", None, self.version)


# -- parsing -----------------------------------------------------------------

def _local_name(tag: str) -> str:
    return tag.split("}", 1)[-1] if isinstance(tag, str) else ""


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        elem.tag = _local_name(elem.tag)
    return root


def _text(elem: Optional[ET.Element], path: str) -> Optional[str]:
    if elem is None:
        return None
    node = elem.find(path)
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


def _parse_dependency(elem: ET.Element) -> Optional[PomDependency]:
    group_id = _text(elem, "groupId")
    artifact_id = _text(elem, "artifactId")
    if group_id is None or artifact_id is None:
        return None
    exclusions = []
    for exclusion in elem.findall("exclusions/exclusion"):
        ex_group = _text(exclusion, "groupId") or "*"
        ex_artifact = _text(exclusion, "artifactId") or "*"
        exclusions.append((ex_group, ex_artifact))
    return PomDependency(
        group_id=group_id,
        artifact_id=artifact_id,
        version=_text(elem, "version"),
        type=_text(elem, "type") or "jar",
        classifier=_text(elem, "classifier"),
        scope=_text(elem, "scope"),
        optional=(_text(elem, "optional") or "").lower() == "true",
        exclusions=tuple(exclusions),
    )


def _parse_dependencies(elem: Optional[ET.Element], path: str) -> List[PomDependency]:
    if elem is None:
        return []
    parsed = (_parse_dependency(dep) for dep in elem.findall(path))
    return [dep for dep in parsed if dep is not None]


def _parse_plugin(elem: ET.Element) -> Optional[PomPlugin]:
    artifact_id = _text(elem, "artifactId")
    if artifact_id is None:
        return None
    return PomPlugin(
        group_id=_text(elem, "groupId") or Constants.DEFAULT_PLUGIN_GROUP,
        artifact_id=artifact_id,
        version=_text(elem, "version"),
        dependencies=tuple(_parse_dependencies(elem, "dependencies/dependency")),
    )


def _parse_plugins(elem: Optional[ET.Element], path: str) -> List[PomPlugin]:
    if elem is None:
        return []
    parsed = (_parse_plugin(plugin) for plugin in elem.findall(path))
    return [plugin for plugin in parsed if plugin is not None]


def _parse_repositories(root: ET.Element, path: str) -> List[Repository]:
    repos = []
    for elem in root.findall(path):
        url = _text(elem, "url")
        if not url:
            continue
        repos.append(Repository(
            id=_text(elem, "id") or url,
            url=url.rstrip("/"),
            layout=_text(elem, "layout") or Constants.DEFAULT_LAYOUT,
        ))
    return repos


def parse_pom(text: str) -> PomModel:
    """Parse POM XML text.

    Raises:
        PomParseError: malformed XML or a missing artifactId.
    """
    try:
        root = _strip_namespaces(ET.fromstring(text))
    except ET.ParseError as e:
        raise PomParseError(f"Malformed POM: {e}") from e
    if root.tag != "project":
        raise PomParseError(f"Unexpected root element <{root.tag}>")
    artifact_id = _text(root, "artifactId")
    if artifact_id is None:
        raise PomParseError("POM has no artifactId")

    parent = None
    parent_elem = root.find("parent")
    if parent_elem is not None:
        p_group = _text(parent_elem, "groupId")
        p_artifact = _text(parent_elem, "artifactId")
        p_version = _text(parent_elem, "version")
        if p_group and p_artifact and p_version:
            relative = parent_elem.find("relativePath")
            parent = ParentRef(
                p_group,
                p_artifact,
                p_version,
                "../pom.xml" if relative is None else (relative.text or "").strip(),
            )

    properties = {}
    props_elem = root.find("properties")
    if props_elem is not None:
        for prop in props_elem:
            properties[prop.tag] = (prop.text or "").strip()

    build = root.find("build")
    return PomModel(
        artifact_id=artifact_id,
        group_id=_text(root, "groupId"),
        version=_text(root, "version"),
        packaging=_text(root, "packaging") or "jar",
        parent=parent,
        properties=properties,
        dependencies=_parse_dependencies(root, "dependencies/dependency"),
        dependency_management=_parse_dependencies(
            root, "dependencyManagement/dependencies/dependency"
        ),
        plugins=_parse_plugins(build, "plugins/plugin"),
        plugin_management=_parse_plugins(build, "pluginManagement/plugins/plugin"),
        extensions=_parse_plugins(build, "extensions/extension"),
        repositories=_parse_repositories(root, "repositories/repository"),
        plugin_repositories=_parse_repositories(root, "pluginRepositories/pluginRepository"),
        modules=[m.text.strip() for m in root.findall("modules/module") if m.text and m.text.strip()],
    )


def read_pom_file(path: str) -> PomModel:
    """Parse a POM from disk.

    Raises:
        PomParseError: unreadable or malformed file.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            return parse_pom(fh.read())
    except OSError as e:
        raise PomParseError(f"Unable to read {path}: {e}") from e


# -- effective model ---------------------------------------------------------

def interpolate(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    """Expand ``${name}`` references; unknown names are left untouched."""
    if value is None or "${" not in value:
        return value

    def _lookup(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name.startswith("env."):
            return os.environ.get(name[4:], match.group(0))
        return properties.get(name, match.group(0))

    for _ in range(_MAX_INTERPOLATION_PASSES):
        expanded = _PROPERTY.sub(_lookup, value)
        if expanded == value:
            break
        value = expanded
    return value


def _model_properties(pom: PomModel, group_id: str, version: str) -> Dict[str, str]:
    builtins = {
        "groupId": group_id,
        "artifactId": pom.artifact_id,
        "version": version,
        "packaging": pom.packaging,
    }
    props: Dict[str, str] = {}
    for prefix in ("project.", "pom."):
        for key, val in builtins.items():
            props[prefix + key] = val
    props["version"] = version
    if pom.parent is not None:
        props["project.parent.groupId"] = pom.parent.group_id
        props["project.parent.artifactId"] = pom.parent.artifact_id
        props["project.parent.version"] = pom.parent.version
        props["parent.version"] = pom.parent.version
    return props


def _interpolate_dependency(dep: PomDependency, props: Dict[str, str]) -> PomDependency:
    return replace(
        dep,
        group_id=interpolate(dep.group_id, props) or dep.group_id,
        artifact_id=interpolate(dep.artifact_id, props) or dep.artifact_id,
        version=interpolate(dep.version, props),
        type=interpolate(dep.type, props) or "jar",
        classifier=interpolate(dep.classifier, props),
        scope=interpolate(dep.scope, props),
        exclusions=tuple(
            (interpolate(g, props) or g, interpolate(a, props) or a) for g, a in dep.exclusions
        ),
    )


def _interpolate_plugin(plugin: PomPlugin, props: Dict[str, str]) -> PomPlugin:
    return replace(
        plugin,
        group_id=interpolate(plugin.group_id, props) or plugin.group_id,
        artifact_id=interpolate(plugin.artifact_id, props) or plugin.artifact_id,
        version=interpolate(plugin.version, props),
        dependencies=tuple(_interpolate_dependency(d, props) for d in plugin.dependencies),
    )


def _interpolate_repository(repo: Repository, props: Dict[str, str]) -> Repository:
    return replace(repo, url=interpolate(repo.url, props) or repo.url)


def _apply_management(dep: PomDependency, managed: Optional[PomDependency]) -> PomDependency:
    if managed is None:
        return dep
    return replace(
        dep,
        version=dep.version or managed.version,
        scope=dep.scope or managed.scope,
        exclusions=dep.exclusions or managed.exclusions,
    )


def _merge_plugin(plugin: PomPlugin, managed: Optional[PomPlugin]) -> PomPlugin:
    if managed is None:
        return plugin
    return replace(
        plugin,
        version=plugin.version or managed.version,
        dependencies=plugin.dependencies or managed.dependencies,
    )


def build_effective(
    pom: PomModel,
    parent: Optional[EffectivePom] = None,
    import_bom: Optional[Callable[[ArtifactIdentity], Optional["EffectivePom"]]] = None,
) -> EffectivePom:
    """Merge ``pom`` with its effective parent and resolve management sections.

    Args:
        pom: The document as parsed.
        parent: Effective model of ``pom.parent`` (None for a root POM or when
            the parent could not be read).
        import_bom: Callback returning the effective model of an
            ``import``-scoped BOM, or None when it cannot be read.

    Returns:
        EffectivePom: Coordinates, dependencies and plugins with properties
        expanded and versions filled from management sections.
    """
    group_id = pom.group_id or (pom.parent.group_id if pom.parent else None) or (
        parent.group_id if parent else ""
    )
    version = pom.version or (pom.parent.version if pom.parent else None) or (
        parent.version if parent else ""
    )

    props: Dict[str, str] = dict(parent.properties) if parent else {}
    props.update(pom.properties)
    props.update(_model_properties(pom, group_id, version))
    group_id = interpolate(group_id, props) or group_id
    version = interpolate(version, props) or version

    descriptor_poms: List[ArtifactIdentity] = []
    if parent is not None:
        descriptor_poms.append(parent.identity())
        descriptor_poms.extend(parent.descriptor_poms)

    management: Dict[Tuple[str, str, str, Optional[str]], PomDependency] = (
        dict(parent.dependency_management) if parent else {}
    )
    for raw in pom.dependency_management:
        dep = _interpolate_dependency(raw, props)
        if dep.scope == Scopes.IMPORT.value and dep.type == "pom":
            bom = import_bom(dep.identity()) if (import_bom and dep.version) else None
            if bom is None:
                logger.warning("Unable to import BOM %s:%s:%s", dep.group_id, dep.artifact_id, dep.version)
                continue
            descriptor_poms.append(bom.identity())
            descriptor_poms.extend(bom.descriptor_poms)
            for key, managed in bom.dependency_management.items():
                management.setdefault(key, managed)
            continue
        management[dep.management_key] = dep

    dependencies: Dict[Tuple[str, str, str, Optional[str]], PomDependency] = {}
    if parent is not None:
        for dep in parent.dependencies:
            dependencies[dep.management_key] = dep
    for raw in pom.dependencies:
        dep = _interpolate_dependency(raw, props)
        dependencies[dep.management_key] = _apply_management(dep, management.get(dep.management_key))

    plugin_management: Dict[Tuple[str, str], PomPlugin] = (
        dict(parent.plugin_management) if parent else {}
    )
    for raw in pom.plugin_management:
        plugin = _interpolate_plugin(raw, props)
        plugin_management[plugin.key] = _merge_plugin(plugin, plugin_management.get(plugin.key))

    plugins: Dict[Tuple[str, str], PomPlugin] = {}
    if parent is not None:
        for plugin in parent.plugins:
            plugins[plugin.key] = plugin
    for raw in pom.plugins:
        plugin = _interpolate_plugin(raw, props)
        plugins[plugin.key] = _merge_plugin(plugin, plugin_management.get(plugin.key))

    extensions = {ext.key: ext for ext in (parent.extensions if parent else [])}
    for raw in pom.extensions:
        ext = _interpolate_plugin(raw, props)
        extensions[ext.key] = ext

    repositories = merge_repositories(
        [_interpolate_repository(r, props) for r in pom.repositories],
        parent.repositories if parent else [],
    )
    plugin_repositories = merge_repositories(
        [_interpolate_repository(r, props) for r in pom.plugin_repositories],
        parent.plugin_repositories if parent else [],
    )

    return EffectivePom(
        group_id=group_id,
        artifact_id=pom.artifact_id,
        version=version,
        packaging=pom.packaging,
        parent=pom.parent,
        properties=props,
        dependencies=list(dependencies.values()),
        dependency_management=management,
        plugins=list(plugins.values()),
        plugin_management=plugin_management,
        extensions=list(extensions.values()),
        repositories=repositories,
        plugin_repositories=plugin_repositories,
        modules=list(pom.modules),
        descriptor_poms=descriptor_poms,
    )
