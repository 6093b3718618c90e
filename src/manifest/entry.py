"""Manifest rows and the remote artifacts they are derived from."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from resolution.checksum import ChecksumResolver
from resolution.models import ArtifactIdentity, Repository
from resolution.service import ResolutionService


@dataclass(frozen=True, order=True)
class ManifestEntry:
    """One manifest row, ordered by (path, url, sha1)."""

    path: str
    url: str
    sha1: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "url": self.url, "sha1": self.sha1}


@dataclass(frozen=True)
class RemoteArtifact:
    """An identity together with the repository hosting it.

    This pair is the deduplication key of the manifest: the same identity
    reached from the same repository along different graph paths is one row.
    """

    identity: ArtifactIdentity
    repository: Repository

    def to_entry(self, service: ResolutionService, checksums: ChecksumResolver) -> ManifestEntry:
        """Fetch the checksum and build the manifest row.

        Raises:
            NoChecksumAvailable: no usable SHA-1 for the artifact.
            TransportError: the checksum could not be downloaded.
        """
        layout = service.layout_for(self.repository)
        sha1 = checksums.resolve(
            self.identity, layout, service.transport_for(self.repository)
        )
        return ManifestEntry(
            path=service.local_path_for(self.identity),
            url=f"{self.repository.url}/{layout.location_of(self.identity)}",
            sha1=sha1,
        )

    def __str__(self) -> str:
        return f"{self.identity} @ {self.repository.url}"
