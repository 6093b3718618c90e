"""HTTP-backed resolution service for Maven repositories.

Reads POMs from the reactor workspace, the local repository or the first
candidate remote repository that has them, builds effective models and
collects runtime dependency closures with "nearest wins" mediation.
"""
from __future__ import annotations

import logging
import re
import threading
from collections import deque
from dataclasses import replace
from typing import Deque, Dict, FrozenSet, List, Optional, Set, Tuple, Union

import requests

from constants import Constants, Scopes
from common.http_client import new_session, safe_get
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from resolution.errors import RepositoryUnreachable, ResolutionFailure
from resolution.models import (
    ArtifactIdentity,
    Dependency,
    Exclusion,
    ManagedDependency,
    Repository,
    is_excluded,
    merge_repositories,
)
from resolution.service import Hosting, HostingKind, ResolutionService
from .layout import Maven2Layout, artifact_path
from .local_repo import LocalRepository
from .pom import EffectivePom, PomDependency, PomParseError, build_effective, parse_pom
from .transport import HttpTransport

logger = logging.getLogger(__name__)

_EXACT_RANGE = re.compile(r"^\[([^,\[\]()]+)\]$")

GAV = Tuple[str, str, str]
_LookupKey = Tuple[GAV, Tuple[Repository, ...]]


def pinned_version(version: Optional[str]) -> Optional[str]:
    """Return a concrete version, unwrapping ``[1.0]``; None for open ranges."""
    if not version:
        return None
    if version[0] in "[(":
        match = _EXACT_RANGE.match(version)
        return match.group(1).strip() if match else None
    return version


def _manage(dep: PomDependency, managed: Optional[ManagedDependency]) -> PomDependency:
    """Override a transitive declaration with the root module's dependencyManagement."""
    if managed is None:
        return dep
    return replace(
        dep,
        version=managed.version or dep.version,
        scope=managed.scope or dep.scope,
        exclusions=dep.exclusions + tuple((e.group_id, e.artifact_id) for e in managed.exclusions),
    )


class MavenResolutionService(ResolutionService):
    """ResolutionService reading POMs over HTTP.

    Parsed models are cached for the lifetime of the instance (one build
    invocation). The cache is guarded by a lock because modules may be
    walked from several threads.
    """

    def __init__(
        self,
        local_repository: Optional[LocalRepository] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ):
        self.local_repository = local_repository or LocalRepository()
        self.session = session or new_session()
        self.timeout = timeout
        self._layout = Maven2Layout()
        self._workspace: Dict[GAV, EffectivePom] = {}
        # Models are the same whichever repository served them; lookups and
        # failures depend on the candidate repositories asked.
        self._models: Dict[GAV, Tuple[EffectivePom, Hosting]] = {}
        self._lookups: Dict[_LookupKey, Union[Hosting, ResolutionFailure]] = {}
        self._transports: Dict[Repository, HttpTransport] = {}
        self._lock = threading.Lock()

    # -- workspace -------------------------------------------------------

    def register_workspace(self, pom: EffectivePom) -> None:
        """Mark a reactor module as built in this invocation."""
        with self._lock:
            self._workspace[(pom.group_id, pom.artifact_id, pom.version)] = pom

    def in_workspace(self, identity: ArtifactIdentity) -> bool:
        with self._lock:
            return identity.gav in self._workspace

    # -- ResolutionService -----------------------------------------------

    def read_descriptor(
        self, identity: ArtifactIdentity, repositories: List[Repository]
    ) -> Hosting:
        if self.in_workspace(identity):
            return Hosting.workspace()
        local = self._local_hosting(identity, repositories)
        if local is not None:
            return local
        _, hosting = self.effective_pom(identity.pom(), repositories)
        if hosting.kind is HostingKind.REMOTE and hosting.repository not in repositories:
            # The model was read through another candidate list.
            hosting = self._lookup(identity.pom(), repositories)
        return hosting

    def collect_dependencies(
        self,
        root: Dependency,
        repositories: List[Repository],
        exclusions: FrozenSet[Exclusion],
    ) -> List[ArtifactIdentity]:
        if root.scope == Scopes.SYSTEM.value:
            return []
        managed = {entry.key: entry for entry in root.management}
        collected: List[ArtifactIdentity] = []
        seen_poms: Set[ArtifactIdentity] = set()
        selected = {self._conflict_key(root.identity)}
        queue: Deque[Tuple[ArtifactIdentity, FrozenSet[Exclusion], List[Repository]]] = deque(
            [(root.identity, frozenset(exclusions), list(repositories))]
        )

        while queue:
            identity, excluded, repos = queue.popleft()
            if identity.is_snapshot:
                continue
            try:
                pom, _ = self.effective_pom(identity.pom(), repos)
            except ResolutionFailure as exc:
                if identity == root.identity:
                    raise
                logger.warning(
                    "The POM for %s is missing, no dependency information available (%s)",
                    identity,
                    exc,
                )
                continue

            for descriptor in pom.descriptor_poms:
                if descriptor not in seen_poms:
                    seen_poms.add(descriptor)
                    collected.append(descriptor)

            child_repos = merge_repositories(repos, pom.repositories)
            for dep in pom.dependencies:
                dep = _manage(dep, managed.get(dep.management_key))
                if (dep.scope or Scopes.COMPILE.value) not in Constants.RUNTIME_SCOPES:
                    continue
                if dep.optional:
                    continue
                version = pinned_version(dep.version)
                if version is None:
                    logger.warning(
                        "Skipping %s:%s of %s: no concrete version (%s)",
                        dep.group_id,
                        dep.artifact_id,
                        identity,
                        dep.version,
                    )
                    continue
                child = ArtifactIdentity.from_type(
                    dep.group_id, dep.artifact_id, version, dep.type, dep.classifier
                )
                if is_excluded(child, excluded):
                    continue
                key = self._conflict_key(child)
                if key in selected:
                    continue
                selected.add(key)
                collected.append(child)
                child_excluded = excluded | frozenset(Exclusion(g, a) for g, a in dep.exclusions)
                queue.append((child, child_excluded, child_repos))

        if is_debug_enabled(logger):
            logger.debug(
                "Dependencies collected",
                extra=extra_context(
                    event="function_exit",
                    component="service",
                    action="collect_dependencies",
                    coordinate=str(root.identity),
                    count=len(collected),
                )
            )
        return collected

    def layout_for(self, repository: Repository) -> Maven2Layout:
        if repository.layout != Constants.DEFAULT_LAYOUT:
            raise ResolutionFailure(repository.url, f"Unsupported repository layout {repository.layout!r}")
        return self._layout

    def transport_for(self, repository: Repository) -> HttpTransport:
        with self._lock:
            transport = self._transports.get(repository)
            if transport is None:
                transport = HttpTransport(repository, session=self.session, timeout=self.timeout)
                self._transports[repository] = transport
            return transport

    def local_path_for(self, identity: ArtifactIdentity) -> str:
        return self.local_repository.path_for(identity)

    # -- POM reading -----------------------------------------------------

    def effective_pom(
        self,
        identity: ArtifactIdentity,
        repositories: List[Repository],
        _chain: Tuple[GAV, ...] = (),
    ) -> Tuple[EffectivePom, Hosting]:
        """Effective model of the POM ``identity`` and where it was found.

        Raises:
            ResolutionFailure: no candidate repository has a readable POM.
        """
        gav = identity.gav
        key = (gav, tuple(repositories))
        with self._lock:
            workspace_pom = self._workspace.get(gav)
            cached = self._models.get(gav)
            failed = self._lookups.get(key)
        if workspace_pom is not None:
            return workspace_pom, Hosting.workspace()
        if cached is not None:
            return cached
        if isinstance(failed, ResolutionFailure):
            raise failed
        if gav in _chain:
            raise ResolutionFailure(identity, "Cyclic parent or BOM import")
        chain = _chain + (gav,)

        try:
            text, hosting = self._load_pom(identity, repositories)
            raw = parse_pom(text)
        except PomParseError as exc:
            failure = ResolutionFailure(identity, "Reading POM", exc)
            self._remember(key, failure)
            raise failure from exc
        except ResolutionFailure as failure:
            self._remember(key, failure)
            raise

        lookup_repos = merge_repositories(repositories, raw.repositories)
        parent = None
        if raw.parent is not None:
            try:
                parent, _ = self.effective_pom(raw.parent.identity(), lookup_repos, chain)
            except ResolutionFailure as exc:
                logger.warning("Parent of %s unavailable: %s", identity, exc)

        def _import(bom: ArtifactIdentity) -> Optional[EffectivePom]:
            try:
                return self.effective_pom(bom.pom(), lookup_repos, chain)[0]
            except ResolutionFailure as exc:
                logger.warning("BOM %s unavailable: %s", bom, exc)
                return None

        effective = build_effective(raw, parent, _import)
        with self._lock:
            stored = self._models.setdefault(gav, (effective, hosting))
            self._lookups.setdefault(key, hosting)
        return stored

    def _remember(self, key: _LookupKey, value: Union[Hosting, ResolutionFailure]) -> None:
        with self._lock:
            self._lookups.setdefault(key, value)

    def _lookup(self, identity: ArtifactIdentity, repositories: List[Repository]) -> Hosting:
        """Where ``identity`` is found among ``repositories``, without rebuilding its model."""
        key = (identity.gav, tuple(repositories))
        with self._lock:
            cached = self._lookups.get(key)
        if isinstance(cached, ResolutionFailure):
            raise cached
        if cached is not None:
            return cached
        try:
            _, hosting = self._load_pom(identity, repositories)
        except ResolutionFailure as failure:
            self._remember(key, failure)
            raise
        self._remember(key, hosting)
        return hosting

    def _local_hosting(
        self, identity: ArtifactIdentity, repositories: List[Repository]
    ) -> Optional[Hosting]:
        """Hosting decided by the local repository alone, if it can be."""
        if not self.local_repository.contains(identity):
            return None
        origins = self.local_repository.remote_origins(identity)
        if not origins:
            return Hosting.local_cache()
        for repo in repositories:
            if repo.id in origins:
                return Hosting.remote(repo)
        return None

    def _load_pom(
        self, identity: ArtifactIdentity, repositories: List[Repository]
    ) -> Tuple[str, Hosting]:
        local = self._local_hosting(identity, repositories)
        if local is not None:
            try:
                with open(self.local_repository.file_for(identity), encoding="utf-8") as fh:
                    return fh.read(), local
            except OSError as exc:
                logger.warning("Unable to read cached POM for %s: %s", identity, exc)

        location = artifact_path(identity)
        last_error: Optional[BaseException] = None
        attempted = answered = 0
        for repo in repositories:
            if repo.layout != Constants.DEFAULT_LAYOUT:
                continue
            url = f"{repo.url}/{location}"
            attempted += 1
            try:
                response = safe_get(url, context=repo.id, session=self.session, timeout=self.timeout)
            except requests.RequestException as exc:
                logger.warning("Unable to reach %s: %s", safe_url(url), exc)
                last_error = exc
                continue
            answered += 1
            if response.status_code == 200:
                return response.text, Hosting.remote(repo)
            if response.status_code != 404:
                last_error = ResolutionFailure(url, f"HTTP {response.status_code}")

        searched = ", ".join(repo.id for repo in repositories) or "no repositories"
        if attempted and not answered:
            raise RepositoryUnreachable(identity, f"Unable to reach {searched}", last_error)
        raise ResolutionFailure(identity, f"Not found in {searched}", last_error)

    @staticmethod
    def _conflict_key(identity: ArtifactIdentity) -> Tuple[str, str, str, Optional[str]]:
        return (identity.group_id, identity.artifact_id, identity.extension, identity.classifier)

