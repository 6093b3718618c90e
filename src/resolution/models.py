"""Data models for artifact coordinates, repositories and project roots."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from typing import FrozenSet, List, Optional, Tuple

from constants import Constants, Scopes

# Dependency <type> values whose artifact extension/classifier differ from the type name.
_TYPE_HANDLERS = {
    "test-jar": ("jar", "tests"),
    "maven-plugin": ("jar", None),
    "ejb": ("jar", None),
    "ejb-client": ("jar", "client"),
    "bundle": ("jar", None),
    "java-source": ("jar", "sources"),
    "javadoc": ("jar", "javadoc"),
}


class ArtifactRole(Enum):
    """Why an artifact is part of a module's build.

    Strict roles abort the module when they cannot be resolved; lenient roles
    only produce warnings.
    """

    PARENT = "parent"
    DEPENDENCY = "dependency"
    PLUGIN_MANAGEMENT = "pluginManagement"
    PLUGIN = "plugin"
    PLUGIN_DEPENDENCY = "pluginDependency"
    EXTENSION = "extension"

    @property
    def strict(self) -> bool:
        return self in (ArtifactRole.PARENT, ArtifactRole.DEPENDENCY)


@total_ordering
@dataclass(frozen=True)
class ArtifactIdentity:
    """Immutable artifact coordinate.

    Equality covers every field; ``classifier=None`` never equals a present
    classifier. Ordering is group, artifact, version, extension, classifier
    with an absent classifier first.
    """

    group_id: str
    artifact_id: str
    extension: str
    classifier: Optional[str]
    version: str

    def __post_init__(self) -> None:
        if self.classifier == "":
            object.__setattr__(self, "classifier", None)

    @classmethod
    def from_type(
        cls,
        group_id: str,
        artifact_id: str,
        version: str,
        type_: Optional[str] = None,
        classifier: Optional[str] = None,
    ) -> "ArtifactIdentity":
        """Build an identity from a POM dependency's <type> and <classifier>."""
        type_ = type_ or "jar"
        extension, implied = _TYPE_HANDLERS.get(type_, (type_, None))
        return cls(group_id, artifact_id, extension, classifier or implied, version)

    def sort_key(self) -> Tuple[str, str, str, str, Tuple[int, str]]:
        classifier_key = (0, "") if self.classifier is None else (1, self.classifier)
        return (self.group_id, self.artifact_id, self.version, self.extension, classifier_key)

    def __lt__(self, other: "ArtifactIdentity") -> bool:
        if not isinstance(other, ArtifactIdentity):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith(Constants.SNAPSHOT_MARKER)

    @property
    def gav(self) -> Tuple[str, str, str]:
        return (self.group_id, self.artifact_id, self.version)

    def pom(self) -> "ArtifactIdentity":
        """The POM artifact describing this one (itself when already a POM)."""
        return ArtifactIdentity(self.group_id, self.artifact_id, "pom", None, self.version)

    def __str__(self) -> str:
        if self.classifier is not None:
            return (
                f"{self.group_id}:{self.artifact_id}:{self.extension}:"
                f"{self.classifier}:{self.version}"
            )
        return f"{self.group_id}:{self.artifact_id}:{self.extension}:{self.version}"


@dataclass(frozen=True)
class Repository:
    """Reference to a remote repository; never mutated by the resolver."""

    id: str
    url: str
    layout: str = Constants.DEFAULT_LAYOUT

    @classmethod
    def parse(cls, value: str) -> "Repository":
        """Parse ``id=url`` (or a bare URL, whose id becomes the URL)."""
        if "=" in value:
            repo_id, url = value.split("=", 1)
            return cls(repo_id.strip(), url.strip())
        return cls(value.strip(), value.strip())

    def __str__(self) -> str:
        return f"{self.id} ({self.url})"


def central() -> Repository:
    """The super-POM's default repository."""
    return Repository(Constants.CENTRAL_ID, Constants.CENTRAL_URL)


def merge_repositories(*groups: List[Repository]) -> List[Repository]:
    """Concatenate repository lists, keeping the first occurrence of each id."""
    seen = set()
    merged = []
    for group in groups:
        for repo in group:
            if repo.id in seen:
                continue
            seen.add(repo.id)
            merged.append(repo)
    return merged


@dataclass(frozen=True)
class Exclusion:
    """A (groupId, artifactId) pair; ``*`` matches anything."""

    group_id: str
    artifact_id: str

    def matches(self, identity: ArtifactIdentity) -> bool:
        return (
            self.group_id in ("*", identity.group_id)
            and self.artifact_id in ("*", identity.artifact_id)
        )


def is_excluded(identity: ArtifactIdentity, exclusions: FrozenSet[Exclusion]) -> bool:
    return any(exclusion.matches(identity) for exclusion in exclusions)


@dataclass(frozen=True)
class ManagedDependency:
    """A dependencyManagement entry of a module, applied to transitive dependencies.

    Keyed like Maven does, by groupId, artifactId, type and classifier;
    unset fields leave the transitive declaration alone.
    """

    group_id: str
    artifact_id: str
    type: str = "jar"
    classifier: Optional[str] = None
    version: Optional[str] = None
    scope: Optional[str] = None
    exclusions: FrozenSet[Exclusion] = frozenset()

    @property
    def key(self) -> Tuple[str, str, str, Optional[str]]:
        return (self.group_id, self.artifact_id, self.type, self.classifier)


@dataclass(frozen=True)
class Dependency:
    """A declared dependency: coordinate plus scope, optional flag and exclusions.

    ``management`` holds the declaring module's managed versions, which
    override the versions and scopes found further down the closure.
    """

    identity: ArtifactIdentity
    scope: str = Scopes.COMPILE.value
    optional: bool = False
    exclusions: FrozenSet[Exclusion] = frozenset()
    management: Tuple[ManagedDependency, ...] = ()


@dataclass(frozen=True)
class Plugin:
    """A build plugin (or pluginManagement entry) with its own dependencies."""

    identity: ArtifactIdentity
    dependencies: Tuple[Dependency, ...] = ()


@dataclass
class ProjectModel:
    """Everything the walker needs to know about one module."""

    identity: ArtifactIdentity
    parent: Optional[ArtifactIdentity] = None
    dependencies: List[Dependency] = field(default_factory=list)
    plugin_management: List[Plugin] = field(default_factory=list)
    plugins: List[Plugin] = field(default_factory=list)
    extensions: List[ArtifactIdentity] = field(default_factory=list)
    remote_repositories: List[Repository] = field(default_factory=list)
    plugin_repositories: List[Repository] = field(default_factory=list)
    base_dir: Optional[str] = None
    # Effective dependencyManagement, handed to the closure of each dependency.
    dependency_management: List[ManagedDependency] = field(default_factory=list)
    # Coordinates declared without a version; reported as lenient failures.
    unversioned_plugins: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.identity.group_id}:{self.identity.artifact_id}:{self.identity.version}"
