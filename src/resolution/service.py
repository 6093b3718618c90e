"""Interfaces of the collaborators the resolver drives.

The walker never talks to the network or the filesystem itself: descriptor
reads, dependency collection, repository layouts, transports and local paths
all come from a ``ResolutionService`` implementation (see
``maven.service.MavenResolutionService`` for the HTTP-backed one).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional

from .models import ArtifactIdentity, Dependency, Exclusion, Repository


class HostingKind(Enum):
    """Where a resolved artifact actually lives."""

    REMOTE = "remote"
    LOCAL_CACHE = "local_cache"
    WORKSPACE = "workspace"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Hosting:
    """Tagged result of a descriptor read; ``repository`` is set only for REMOTE."""

    kind: HostingKind
    repository: Optional[Repository] = None

    @classmethod
    def remote(cls, repository: Repository) -> "Hosting":
        return cls(HostingKind.REMOTE, repository)

    @classmethod
    def local_cache(cls) -> "Hosting":
        return cls(HostingKind.LOCAL_CACHE)

    @classmethod
    def workspace(cls) -> "Hosting":
        return cls(HostingKind.WORKSPACE)

    @classmethod
    def unknown(cls) -> "Hosting":
        return cls(HostingKind.UNKNOWN)


@dataclass(frozen=True)
class ChecksumLocation:
    """A checksum file advertised by a repository layout."""

    algorithm: str
    location: str


class RepositoryLayout(ABC):
    """Maps coordinates to paths inside one repository."""

    @abstractmethod
    def location_of(self, identity: ArtifactIdentity) -> str:
        """Relative location of the artifact itself."""

    @abstractmethod
    def checksums_of(self, identity: ArtifactIdentity, location: str) -> List[ChecksumLocation]:
        """Checksum files available for the artifact at ``location``."""


class Transport(ABC):
    """Fetches resources from one repository."""

    @abstractmethod
    def fetch(self, location: str) -> bytes:
        """Return the body at ``location``; raise TransportError on failure."""


class ResolutionService(ABC):
    """Descriptor reads, dependency collection and path computation."""

    @abstractmethod
    def read_descriptor(
        self, identity: ArtifactIdentity, repositories: List[Repository]
    ) -> Hosting:
        """Determine which repository hosts ``identity``.

        Raises:
            ResolutionFailure: the descriptor could not be read.
        """

    @abstractmethod
    def collect_dependencies(
        self,
        root: Dependency,
        repositories: List[Repository],
        exclusions: FrozenSet[Exclusion],
    ) -> List[ArtifactIdentity]:
        """Return the runtime-scope closure below ``root`` in collection order.

        Raises:
            ResolutionFailure: the root's own dependency information is unavailable.
        """

    @abstractmethod
    def layout_for(self, repository: Repository) -> RepositoryLayout:
        """Layout policy of ``repository``."""

    @abstractmethod
    def transport_for(self, repository: Repository) -> Transport:
        """Transport bound to ``repository``."""

    @abstractmethod
    def local_path_for(self, identity: ArtifactIdentity) -> str:
        """Path of ``identity`` relative to the local repository root."""
