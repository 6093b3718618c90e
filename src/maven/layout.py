"""The Maven 2 ("default") repository layout."""
from __future__ import annotations

import re
from typing import List

from constants import Constants
from resolution.models import ArtifactIdentity
from resolution.service import ChecksumLocation, RepositoryLayout

# 1.0-20200101.123456-7 is a deployed build of 1.0-SNAPSHOT
_TIMESTAMPED_SNAPSHOT = re.compile(r"^(.*)-(\d{8}\.\d{6})-(\d+)$")

# (algorithm, file suffix) in the order the layout advertises them
CHECKSUM_ALGORITHMS = [
    (Constants.CHECKSUM_ALGORITHM, ".sha1"),
    ("MD5", ".md5"),
]


def base_version(version: str) -> str:
    """Directory version of an artifact: timestamped snapshots map back to -SNAPSHOT."""
    match = _TIMESTAMPED_SNAPSHOT.match(version)
    if match:
        return f"{match.group(1)}-{Constants.SNAPSHOT_MARKER}"
    return version


def artifact_path(identity: ArtifactIdentity) -> str:
    """``group/as/path/artifact/baseVersion/artifact-version[-classifier].ext``."""
    file_name = f"{identity.artifact_id}-{identity.version}"
    if identity.classifier is not None:
        file_name = f"{file_name}-{identity.classifier}"
    if identity.extension:
        file_name = f"{file_name}.{identity.extension}"
    return "/".join([
        identity.group_id.replace(".", "/"),
        identity.artifact_id,
        base_version(identity.version),
        file_name,
    ])


class Maven2Layout(RepositoryLayout):
    """Layout used by Maven Central and virtually every Maven repository."""

    def location_of(self, identity: ArtifactIdentity) -> str:
        return artifact_path(identity)

    def checksums_of(self, identity: ArtifactIdentity, location: str) -> List[ChecksumLocation]:
        return [
            ChecksumLocation(algorithm, location + suffix)
            for algorithm, suffix in CHECKSUM_ALGORITHMS
        ]
