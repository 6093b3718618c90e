"""Classify an artifact as remotely hosted, local, or not pinnable."""
from __future__ import annotations

import logging
from typing import List

from common.logging_utils import extra_context, is_debug_enabled
from .errors import ResolutionFailure, UnresolvableSnapshot
from .models import ArtifactIdentity, Repository
from .service import Hosting, HostingKind, ResolutionService

logger = logging.getLogger(__name__)


def resolve_hosting(
    identity: ArtifactIdentity,
    repositories: List[Repository],
    service: ResolutionService,
) -> Hosting:
    """Find which repository hosts ``identity``.

    Args:
        identity: Artifact to classify.
        repositories: Candidate repositories in caller order.
        service: Resolution service performing the descriptor read.

    Returns:
        The hosting reported by the service. LOCAL_CACHE, WORKSPACE and
        UNKNOWN all mean "no manifest entry"; only UNKNOWN is logged as a
        warning.

    Raises:
        UnresolvableSnapshot: the version is an unresolved snapshot.
        ResolutionFailure: the descriptor could not be read.
    """
    if identity.is_snapshot:
        raise UnresolvableSnapshot(identity)

    try:
        hosting = service.read_descriptor(identity, repositories)
    except ResolutionFailure:
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise ResolutionFailure(identity, "Getting descriptor", exc) from exc

    if hosting.kind is HostingKind.REMOTE and hosting.repository is not None:
        if is_debug_enabled(logger):
            logger.debug(
                "Artifact is remote",
                extra=extra_context(
                    event="decision",
                    component="remote",
                    action="resolve_hosting",
                    outcome="remote",
                    coordinate=str(identity),
                    target=hosting.repository.url,
                )
            )
        return hosting

    if hosting.kind is HostingKind.WORKSPACE:
        logger.info("%s is built in this workspace, not recorded", identity)
        return hosting
    if hosting.kind is HostingKind.LOCAL_CACHE:
        logger.info("%s is only available in the local repository, not recorded", identity)
        return hosting

    logger.warning("%s resolved from an unknown repository kind, treating as local", identity)
    return Hosting.unknown()
