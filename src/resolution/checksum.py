"""Fetch and decode the SHA-1 checksum of a remote artifact."""
from __future__ import annotations

import logging
import re

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer
from .errors import NoChecksumAvailable, TransportError
from .models import ArtifactIdentity
from .service import RepositoryLayout, Transport

logger = logging.getLogger(__name__)

_SHA1_PATTERN = re.compile(r"^[0-9a-f]{40}$")


def decode_sha1(identity: ArtifactIdentity, body: bytes) -> str:
    """Decode the digest from a checksum file body.

    Checksum files hold the hex digest optionally followed by a file name;
    only the fixed-width prefix is trusted.
    """
    prefix = body[:Constants.SHA1_HEX_LENGTH]
    try:
        digest = prefix.decode("utf-8").lower()
    except UnicodeDecodeError as exc:
        raise NoChecksumAvailable(identity, "Malformed SHA-1", exc) from exc
    if not _SHA1_PATTERN.match(digest):
        raise NoChecksumAvailable(identity, f"Malformed SHA-1 {digest!r}")
    return digest


class ChecksumResolver:  # pylint: disable=too-few-public-methods
    """Resolves SHA-1 digests through a repository layout and transport."""

    algorithm = Constants.CHECKSUM_ALGORITHM

    def resolve(
        self,
        identity: ArtifactIdentity,
        layout: RepositoryLayout,
        transport: Transport,
    ) -> str:
        """Return the lowercase hex SHA-1 of ``identity``.

        Raises:
            NoChecksumAvailable: the layout advertises no SHA-1, or the
                fetched body is not a hex digest.
            TransportError: the checksum file could not be fetched.
        """
        location = layout.location_of(identity)
        checksum = next(
            (ck for ck in layout.checksums_of(identity, location) if ck.algorithm == self.algorithm),
            None,
        )
        if checksum is None:
            raise NoChecksumAvailable(identity, f"No {self.algorithm}")

        with Timer() as timer:
            try:
                body = transport.fetch(checksum.location)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                raise TransportError(identity, f"Downloading {self.algorithm}", exc) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Checksum fetched",
                extra=extra_context(
                    event="checksum",
                    component="checksum",
                    action="fetch",
                    outcome="success",
                    coordinate=str(identity),
                    target=checksum.location,
                    duration_ms=timer.duration_ms(),
                )
            )
        return decode_sha1(identity, body)
