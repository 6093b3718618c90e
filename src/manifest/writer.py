"""Serialize manifest entries to JSON."""
from __future__ import annotations

import json
import logging
from typing import Iterable

from resolution.errors import OutputWriteFailure
from .entry import ManifestEntry

logger = logging.getLogger(__name__)


def render_manifest(entries: Iterable[ManifestEntry]) -> str:
    """Render entries as a JSON array in manifest order.

    Entries are sorted here as well, so the text only depends on the set of
    entries and not on the order they were produced in.
    """
    data = [entry.to_dict() for entry in sorted(entries)]
    return json.dumps(data, ensure_ascii=False, indent=4) + "\n"


def write_manifest(entries: Iterable[ManifestEntry], path: str) -> int:
    """Write the manifest file.

    Args:
        entries: Manifest rows.
        path: Output file path.

    Returns:
        int: Number of rows written.

    Raises:
        OutputWriteFailure: the file could not be created or written.
    """
    entries = list(entries)
    text = render_manifest(entries)
    try:
        with open(path, "w", encoding="utf-8", newline="\n") as file:
            file.write(text)
    except OSError as e:
        raise OutputWriteFailure(path, e) from e
    logger.info("Manifest with %d entries has been successfully written at: %s", len(entries), path)
    return len(entries)
