"""Shared fixtures: an in-memory resolution service for walker and session tests."""
from __future__ import annotations

import hashlib
import threading

import pytest

from resolution.errors import ResolutionFailure, TransportError
from resolution.models import Repository, is_excluded
from resolution.service import Hosting, ResolutionService, Transport
from maven.layout import Maven2Layout, artifact_path

EXAMPLE_REPO = Repository("example", "https://repo.example/maven2")


def sha1_of(location):
    """Deterministic fake digest served for ``location``."""
    return hashlib.sha1(location.encode("utf-8")).hexdigest()


class FakeTransport(Transport):
    """Serves a checksum file for every location except the ``missing`` ones."""

    def __init__(self):
        self.missing = set()
        self.fetched = []

    def fetch(self, location):
        self.fetched.append(location)
        if location.endswith(".sha1") and location[:-len(".sha1")] in self.missing:
            raise TransportError(location, "Fetching returned HTTP 404")
        file_name = location.rsplit("/", 1)[-1]
        return f"{sha1_of(location[:-len('.sha1')])}  {file_name}\n".encode("utf-8")


class FakeResolutionService(ResolutionService):
    """Every artifact is remote in one repository unless told otherwise.

    ``closures`` maps a root identity to the full closure the service reports;
    ``hosting`` overrides the hosting of single identities; ``unreadable`` and
    ``uncollectable`` make descriptor reads or collection fail.
    """

    def __init__(self, repository=EXAMPLE_REPO):
        self.repository = repository
        self.layout = Maven2Layout()
        self.transport = FakeTransport()
        self.hosting = {}
        self.closures = {}
        self.unreadable = set()
        self.uncollectable = set()
        self.descriptor_calls = []
        self.collect_calls = []
        self._lock = threading.Lock()

    def read_descriptor(self, identity, repositories):
        with self._lock:
            self.descriptor_calls.append(identity)
        if identity in self.unreadable:
            raise ResolutionFailure(identity, f"Not found in {self.repository.id}")
        return self.hosting.get(identity, Hosting.remote(self.repository))

    def collect_dependencies(self, root, repositories, exclusions):
        with self._lock:
            self.collect_calls.append((root.identity, exclusions))
        if root.identity in self.uncollectable:
            raise ResolutionFailure(root.identity, "Collecting dependencies")
        return [
            identity for identity in self.closures.get(root.identity, [])
            if not is_excluded(identity, exclusions)
        ]

    def layout_for(self, repository):
        return self.layout

    def transport_for(self, repository):
        return self.transport

    def local_path_for(self, identity):
        return artifact_path(identity)


@pytest.fixture
def fake_service():
    return FakeResolutionService()
