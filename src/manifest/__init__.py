"""Manifest package.

- entry.py: manifest rows and the remote artifacts they come from
- accumulator.py: thread-safe, session-wide dedup set
- writer.py: deterministic JSON serialization
"""

from .entry import ManifestEntry, RemoteArtifact
from .accumulator import ManifestAccumulator
from .writer import render_manifest, write_manifest

__all__ = [
    "ManifestEntry",
    "RemoteArtifact",
    "ManifestAccumulator",
    "render_manifest",
    "write_manifest",
]
