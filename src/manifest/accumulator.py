"""Session-wide, thread-safe collection of remote artifacts."""
from __future__ import annotations

import threading
from typing import Dict, Hashable, List, Optional, Set

from .entry import ManifestEntry, RemoteArtifact


class ManifestAccumulator:
    """Ordered, duplicate-free set of remote artifacts shared by all modules.

    ``claim`` is the dedup primitive for manifest rows: the check and the
    insert happen under one lock, so exactly one caller wins each remote
    artifact. A claimed artifact whose entry never gets recorded (checksum
    failure) stays claimed and is left out of ``entries()``.

    Expansion is tracked apart from claiming. An artifact first reached
    inside another root's closure is recorded there, but its own closure
    was cut by that root's exclusions and mediation, so it is still
    expanded when it later shows up as a root.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._artifacts: Dict[RemoteArtifact, Optional[ManifestEntry]] = {}
        self._expanded: Set[Hashable] = set()

    def claim(self, remote: RemoteArtifact) -> bool:
        """Insert ``remote`` if absent; return True when this call inserted it."""
        with self._lock:
            if remote in self._artifacts:
                return False
            self._artifacts[remote] = None
            return True

    def record(self, remote: RemoteArtifact, entry: ManifestEntry) -> None:
        """Attach the manifest row of a previously claimed artifact."""
        with self._lock:
            if remote not in self._artifacts:
                raise KeyError(f"{remote} was never claimed")
            self._artifacts[remote] = entry

    def claim_expansion(self, key: Hashable) -> bool:
        """Reserve the dependency collection identified by ``key``.

        ``key`` must capture everything the closure depends on (the root
        dependency with its exclusions and management, and the candidate
        repositories). Returns True for the first caller only.
        """
        with self._lock:
            if key in self._expanded:
                return False
            self._expanded.add(key)
            return True

    def entries(self) -> List[ManifestEntry]:
        """Recorded manifest rows in (path, url, sha1) order."""
        with self._lock:
            recorded = {entry for entry in self._artifacts.values() if entry is not None}
        return sorted(recorded)
