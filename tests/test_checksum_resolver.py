"""Tests for SHA-1 checksum retrieval and decoding."""
from unittest.mock import MagicMock

import pytest

from resolution.checksum import ChecksumResolver, decode_sha1
from resolution.errors import NoChecksumAvailable, TransportError
from resolution.models import ArtifactIdentity
from resolution.service import ChecksumLocation

LIB = ArtifactIdentity("com.example", "lib", "jar", None, "1.2.3")


def _layout(checksums):
    layout = MagicMock()
    layout.location_of.return_value = "com/example/lib/1.2.3/lib-1.2.3.jar"
    layout.checksums_of.return_value = checksums
    return layout


class TestDecodeSha1:
    """Only the fixed-width hex prefix of a checksum file is used."""

    def test_digest_followed_by_file_name(self):
        body = ("a" * 40 + "  some-file.jar\n").encode("utf-8")
        assert decode_sha1(LIB, body) == "a" * 40

    def test_digest_only(self):
        assert decode_sha1(LIB, b"0123456789abcdef0123456789abcdef01234567") == (
            "0123456789abcdef0123456789abcdef01234567"
        )

    def test_uppercase_is_lowered(self):
        assert decode_sha1(LIB, ("ABCDEF0123" * 4).encode("utf-8")) == "abcdef0123" * 4

    @pytest.mark.parametrize("body", [b"", b"abc", b"<html>not found</html>" * 3, b"\xff" * 40])
    def test_malformed_bodies(self, body):
        with pytest.raises(NoChecksumAvailable) as excinfo:
            decode_sha1(LIB, body)
        assert excinfo.value.coordinate == str(LIB)


class TestChecksumResolver:
    """Fetching the SHA-1 through a layout and transport."""

    def test_fetches_the_sha1_location(self):
        layout = _layout([
            ChecksumLocation("MD5", "com/example/lib/1.2.3/lib-1.2.3.jar.md5"),
            ChecksumLocation("SHA-1", "com/example/lib/1.2.3/lib-1.2.3.jar.sha1"),
        ])
        transport = MagicMock()
        transport.fetch.return_value = ("c" * 40 + "\n").encode("utf-8")

        assert ChecksumResolver().resolve(LIB, layout, transport) == "c" * 40
        transport.fetch.assert_called_once_with("com/example/lib/1.2.3/lib-1.2.3.jar.sha1")

    def test_layout_without_sha1(self):
        layout = _layout([ChecksumLocation("MD5", "x.md5")])
        transport = MagicMock()
        with pytest.raises(NoChecksumAvailable) as excinfo:
            ChecksumResolver().resolve(LIB, layout, transport)
        assert "No SHA-1" in str(excinfo.value)
        transport.fetch.assert_not_called()

    def test_transport_error_names_the_artifact(self):
        layout = _layout([ChecksumLocation("SHA-1", "x.sha1")])
        transport = MagicMock()
        transport.fetch.side_effect = TransportError("https://repo.example/x.sha1", "Fetching returned HTTP 404")
        with pytest.raises(TransportError) as excinfo:
            ChecksumResolver().resolve(LIB, layout, transport)
        assert excinfo.value.coordinate == str(LIB)
        assert isinstance(excinfo.value.cause, TransportError)

    def test_unexpected_transport_exception_is_wrapped(self):
        layout = _layout([ChecksumLocation("SHA-1", "x.sha1")])
        transport = MagicMock()
        transport.fetch.side_effect = RuntimeError("socket closed")
        with pytest.raises(TransportError) as excinfo:
            ChecksumResolver().resolve(LIB, layout, transport)
        assert "Downloading SHA-1" in str(excinfo.value)
        assert "socket closed" in str(excinfo.value)
