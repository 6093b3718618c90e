"""Tests for hosting classification of single artifacts."""
import logging
from unittest.mock import MagicMock

import pytest

from resolution.errors import ResolutionFailure, UnresolvableSnapshot
from resolution.models import ArtifactIdentity, Repository
from resolution.remote import resolve_hosting
from resolution.service import Hosting, HostingKind, ResolutionService

REPO = Repository("example", "https://repo.example/maven2")
LIB = ArtifactIdentity("com.example", "lib", "jar", None, "1.2.3")


def _service(result=None, error=None):
    service = MagicMock(spec=ResolutionService)
    if error is not None:
        service.read_descriptor.side_effect = error
    else:
        service.read_descriptor.return_value = result
    return service


class TestResolveHosting:
    """resolve_hosting() dispatch on the hosting kind."""

    def test_snapshot_is_never_looked_up(self):
        service = _service(Hosting.remote(REPO))
        snapshot = ArtifactIdentity("com.example", "lib", "jar", None, "1.0-SNAPSHOT")
        with pytest.raises(UnresolvableSnapshot):
            resolve_hosting(snapshot, [REPO], service)
        service.read_descriptor.assert_not_called()

    def test_remote_hosting_is_returned(self):
        service = _service(Hosting.remote(REPO))
        hosting = resolve_hosting(LIB, [REPO], service)
        assert hosting == Hosting.remote(REPO)
        service.read_descriptor.assert_called_once_with(LIB, [REPO])

    def test_workspace_is_logged_at_info(self, caplog):
        service = _service(Hosting.workspace())
        with caplog.at_level(logging.INFO):
            hosting = resolve_hosting(LIB, [REPO], service)
        assert hosting.kind is HostingKind.WORKSPACE
        assert "built in this workspace" in caplog.text

    def test_local_cache(self):
        hosting = resolve_hosting(LIB, [REPO], _service(Hosting.local_cache()))
        assert hosting.kind is HostingKind.LOCAL_CACHE
        assert hosting.repository is None

    def test_unknown_kind_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            hosting = resolve_hosting(LIB, [REPO], _service(Hosting.unknown()))
        assert hosting == Hosting.unknown()
        assert "unknown repository kind" in caplog.text

    def test_resolution_failure_propagates(self):
        failure = ResolutionFailure(LIB, "Not found in example")
        with pytest.raises(ResolutionFailure) as excinfo:
            resolve_hosting(LIB, [REPO], _service(error=failure))
        assert excinfo.value is failure

    def test_other_errors_are_wrapped(self):
        with pytest.raises(ResolutionFailure) as excinfo:
            resolve_hosting(LIB, [REPO], _service(error=RuntimeError("boom")))
        assert excinfo.value.coordinate == str(LIB)
        assert isinstance(excinfo.value.cause, RuntimeError)
