"""Walk a module's roots and their dependency closures into the manifest.

Roots are visited in declaration order (parent, dependencies,
pluginManagement, plugins with their dependencies, extensions). Each root's
closure comes from the resolution service in one call and is visited before
the next root, through an explicit worklist rather than recursion.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Deque, List, Optional, Tuple

from constants import Scopes
from common.logging_utils import extra_context, is_debug_enabled, Timer
from manifest.accumulator import ManifestAccumulator
from manifest.entry import RemoteArtifact
from .checksum import ChecksumResolver
from .errors import ArtifactError, ModuleResolutionError, ResolutionFailure, UnresolvableSnapshot
from .models import ArtifactIdentity, ArtifactRole, Dependency, ProjectModel, Repository
from .remote import resolve_hosting
from .service import HostingKind, ResolutionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkItem:
    """One artifact to visit; ``root`` is set when its closure should be collected."""

    identity: ArtifactIdentity
    role: ArtifactRole
    repositories: Tuple[Repository, ...]
    root: Optional[Dependency] = None


@dataclass
class WalkReport:
    """What happened to every artifact visited for one module."""

    module: str
    recorded: List[RemoteArtifact] = field(default_factory=list)
    local: List[ArtifactIdentity] = field(default_factory=list)
    snapshots: List[ArtifactIdentity] = field(default_factory=list)
    failures: List[Tuple[ArtifactRole, ArtifactError]] = field(default_factory=list)

    @property
    def strict_failures(self) -> List[Tuple[ArtifactRole, ArtifactError]]:
        return [(role, err) for role, err in self.failures if role.strict]

    @property
    def warnings(self) -> int:
        """Count of lenient failures and skipped snapshots."""
        return len(self.failures) - len(self.strict_failures) + len(self.snapshots)

    def raise_for_failures(self) -> None:
        """Raise ModuleResolutionError if any strict artifact failed."""
        strict = self.strict_failures
        if strict:
            raise ModuleResolutionError(
                self.module, [(role.value, err) for role, err in strict]
            )


def _dependency_root(
    identity: ArtifactIdentity,
    role: ArtifactRole,
    repositories: List[Repository],
    scope: str = Scopes.COMPILE.value,
) -> WorkItem:
    return WorkItem(identity, role, tuple(repositories), Dependency(identity, scope=scope))


def project_roots(project: ProjectModel) -> List[WorkItem]:
    """The module's starting points in declaration order."""
    remote = project.remote_repositories
    plugin_repos = project.plugin_repositories
    items: List[WorkItem] = []
    if project.parent is not None:
        items.append(_dependency_root(project.parent, ArtifactRole.PARENT, remote))
    management = tuple(project.dependency_management)
    for dependency in project.dependencies:
        if management:
            dependency = replace(dependency, management=management)
        items.append(
            WorkItem(dependency.identity, ArtifactRole.DEPENDENCY, tuple(remote), dependency)
        )
    for plugin in project.plugin_management:
        items.append(_dependency_root(plugin.identity, ArtifactRole.PLUGIN_MANAGEMENT, plugin_repos))
    for plugin in project.plugins:
        items.append(_dependency_root(plugin.identity, ArtifactRole.PLUGIN, plugin_repos))
        for dependency in plugin.dependencies:
            items.append(
                _dependency_root(
                    dependency.identity,
                    ArtifactRole.PLUGIN_DEPENDENCY,
                    plugin_repos,
                    scope=Scopes.RUNTIME.value,
                )
            )
    for extension in project.extensions:
        items.append(_dependency_root(extension, ArtifactRole.EXTENSION, plugin_repos))
    return items


class GraphWalker:
    """Visits one module's artifacts and feeds the shared accumulator."""

    def __init__(
        self,
        service: ResolutionService,
        accumulator: ManifestAccumulator,
        checksums: Optional[ChecksumResolver] = None,
    ):
        self.service = service
        self.accumulator = accumulator
        self.checksums = checksums or ChecksumResolver()

    def walk(self, project: ProjectModel) -> WalkReport:
        """Visit every root of ``project`` and everything reachable from it.

        Failures are collected per artifact in the returned report; call
        ``raise_for_failures()`` on it to abort on strict ones.
        """
        report = WalkReport(module=str(project))
        for coordinate in project.unversioned_plugins:
            self._fail(
                report,
                ArtifactRole.PLUGIN,
                ResolutionFailure(coordinate, "No version declared or managed"),
            )

        queue: Deque[WorkItem] = deque(project_roots(project))
        with Timer() as timer:
            while queue:
                item = queue.popleft()
                try:
                    queue.extendleft(reversed(self._visit(item, report)))
                except UnresolvableSnapshot as exc:
                    logger.info("Skipping %s: %s", item.identity, exc)
                    report.snapshots.append(item.identity)
                except ArtifactError as exc:
                    self._fail(report, item.role, exc)

        logger.info(
            "%s: %d artifact(s) recorded, %d local, %d snapshot(s), %d failure(s)",
            report.module,
            len(report.recorded),
            len(report.local),
            len(report.snapshots),
            len(report.failures),
        )
        if is_debug_enabled(logger):
            logger.debug(
                "Module walked",
                extra=extra_context(
                    event="function_exit",
                    component="walker",
                    action="walk",
                    target=report.module,
                    count=len(report.recorded),
                    duration_ms=timer.duration_ms(),
                )
            )
        return report

    def _visit(self, item: WorkItem, report: WalkReport) -> List[WorkItem]:
        """Classify one artifact and return the follow-up work it produces."""
        repositories = list(item.repositories)
        hosting = resolve_hosting(item.identity, repositories, self.service)
        follow_up: List[WorkItem] = []

        if hosting.kind is HostingKind.REMOTE and hosting.repository is not None:
            remote = RemoteArtifact(item.identity, hosting.repository)
            if self.accumulator.claim(remote):
                self._record(remote, item.role, report)
                pom = item.identity.pom()
                if pom != item.identity:
                    follow_up.append(WorkItem(pom, item.role, item.repositories))
        elif hosting.kind is HostingKind.LOCAL_CACHE:
            report.local.append(item.identity)
        else:
            # Built here or of unknown origin: nothing of it is downloaded.
            report.local.append(item.identity)
            return follow_up

        # Expanded once per distinct collection, however the artifact was claimed.
        if item.root is not None and self.accumulator.claim_expansion(
            (item.root, item.repositories)
        ):
            follow_up.extend(
                WorkItem(identity, item.role, item.repositories)
                for identity in self._collect(item.root, repositories)
            )
        return follow_up

    def _record(self, remote: RemoteArtifact, role: ArtifactRole, report: WalkReport) -> None:
        try:
            entry = remote.to_entry(self.service, self.checksums)
        except ArtifactError as exc:
            # The claim stays as a tombstone; the subtree is still walked.
            self._fail(report, role, exc)
            return
        self.accumulator.record(remote, entry)
        report.recorded.append(remote)

    def _collect(self, root: Dependency, repositories: List[Repository]) -> List[ArtifactIdentity]:
        try:
            closure = self.service.collect_dependencies(root, repositories, root.exclusions)
        except ResolutionFailure:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise ResolutionFailure(root.identity, "Collecting dependencies", exc) from exc
        return [identity for identity in closure if identity != root.identity]

    @staticmethod
    def _fail(report: WalkReport, role: ArtifactRole, exc: ArtifactError) -> None:
        report.failures.append((role, exc))
        if role.strict:
            logger.error("Failed to resolve %s %s", role.value, exc)
        else:
            logger.warning("Skipping %s %s", role.value, exc)
