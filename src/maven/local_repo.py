"""The on-disk local repository (``~/.m2/repository``)."""
from __future__ import annotations

import logging
import os
from typing import Optional, Set

from constants import Constants
from resolution.models import ArtifactIdentity
from .layout import artifact_path

logger = logging.getLogger(__name__)


class LocalRepository:
    """Path computation and origin lookup for the local repository.

    Maven records where a downloaded file came from in a
    ``_remote.repositories`` file next to it, one ``file>repoId=`` line per
    origin. A file with no such record was installed locally.
    """

    def __init__(self, basedir: Optional[str] = None):
        self.basedir = os.path.abspath(
            os.path.expanduser(basedir or Constants.DEFAULT_LOCAL_REPOSITORY)
        )

    def path_for(self, identity: ArtifactIdentity) -> str:
        """Path of ``identity`` relative to the repository root."""
        return artifact_path(identity)

    def file_for(self, identity: ArtifactIdentity) -> str:
        return os.path.join(self.basedir, *self.path_for(identity).split("/"))

    def contains(self, identity: ArtifactIdentity) -> bool:
        return os.path.isfile(self.file_for(identity))

    def remote_origins(self, identity: ArtifactIdentity) -> Optional[Set[str]]:
        """Repository ids recorded for the artifact's file.

        Returns None when there is no record file at all, and an empty set when
        the file was installed locally rather than downloaded.
        """
        artifact_file = self.file_for(identity)
        record = os.path.join(os.path.dirname(artifact_file), Constants.REMOTE_RECORD_FILE)
        if not os.path.isfile(record):
            return None
        file_name = os.path.basename(artifact_file)
        origins: Set[str] = set()
        try:
            with open(record, encoding="utf-8") as fh:
                for line in fh:
                    line = line.strip()
                    if not line or line.startswith("#") or ">" not in line:
                        continue
                    name, repo = line.split(">", 1)
                    repo = repo.rstrip("=").strip()
                    if name == file_name and repo:
                        origins.add(repo)
        except OSError as e:
            logger.warning("Unable to read %s: %s", record, e)
            return None
        return origins
