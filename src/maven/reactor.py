"""Load a multi-module build and order its modules."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Set

from constants import Constants, Scopes
from resolution.errors import ManifestError, ResolutionFailure
from resolution.models import (
    ArtifactIdentity,
    ProjectModel,
    Repository,
    central,
    merge_repositories,
)
from .pom import EffectivePom, PomModel, PomParseError, build_effective, read_pom_file
from .service import MavenResolutionService, pinned_version

logger = logging.getLogger(__name__)


class ReactorError(ManifestError):
    """The module structure itself is unusable (bad POM, cycle, missing module)."""


@dataclass
class ReactorModule:
    path: str
    raw: PomModel
    effective: Optional[EffectivePom] = None


def _pom_path(path: str) -> str:
    return os.path.join(path, Constants.POM_XML_FILE) if os.path.isdir(path) else path


def discover_modules(root_pom: str) -> List[ReactorModule]:
    """Read ``root_pom`` and every module it lists, recursively, in declaration order.

    Raises:
        ReactorError: a POM is missing or malformed.
    """
    modules: List[ReactorModule] = []
    seen: Set[str] = set()
    pending = [os.path.abspath(_pom_path(root_pom))]
    while pending:
        path = pending.pop(0)
        real = os.path.realpath(path)
        if real in seen:
            continue
        seen.add(real)
        try:
            raw = read_pom_file(path)
        except PomParseError as e:
            raise ReactorError(str(e)) from e
        modules.append(ReactorModule(path, raw))
        base = os.path.dirname(path)
        children = [os.path.abspath(_pom_path(os.path.join(base, m))) for m in raw.modules]
        pending[0:0] = children
    logger.info("Reactor contains %d module(s)", len(modules))
    return modules


class ReactorLoader:
    """Builds effective models and ProjectModels for every reactor module."""

    def __init__(
        self,
        service: MavenResolutionService,
        repositories: Sequence[Repository] = (),
        plugin_repositories: Sequence[Repository] = (),
    ):
        self.service = service
        self.repositories = list(repositories)
        self.plugin_repositories = list(plugin_repositories)
        self._by_path: Dict[str, ReactorModule] = {}

    def load(self, root_pom: str) -> List[ProjectModel]:
        """Project models of every module in build order.

        Raises:
            ReactorError: malformed structure or a dependency cycle.
            ResolutionFailure: a parent POM or a required version is unavailable.
        """
        modules = discover_modules(root_pom)
        self._by_path = {os.path.realpath(m.path): m for m in modules}
        for module in modules:
            self._effective(module, ())
        projects = [self._project(module) for module in modules]
        return order_projects(projects)

    def _repositories(self, pom: EffectivePom) -> List[Repository]:
        return merge_repositories(self.repositories, pom.repositories, [central()])

    def _effective(self, module: ReactorModule, chain: Sequence[str]) -> EffectivePom:
        if module.effective is not None:
            return module.effective
        if module.path in chain:
            raise ReactorError(f"Cyclic parent reference at {module.path}")
        raw = module.raw
        parent = None
        if raw.parent is not None:
            local = self._local_parent(module)
            if local is not None:
                parent = self._effective(local, tuple(chain) + (module.path,))
            else:
                repos = merge_repositories(self.repositories, raw.repositories, [central()])
                parent, _ = self.service.effective_pom(raw.parent.identity(), repos)

        def _import(bom: ArtifactIdentity) -> Optional[EffectivePom]:
            try:
                repos = merge_repositories(self.repositories, raw.repositories, [central()])
                return self.service.effective_pom(bom.pom(), repos)[0]
            except ResolutionFailure as exc:
                logger.warning("BOM %s unavailable: %s", bom, exc)
                return None

        module.effective = build_effective(raw, parent, _import)
        self.service.register_workspace(module.effective)
        return module.effective

    def _local_parent(self, module: ReactorModule) -> Optional[ReactorModule]:
        ref = module.raw.parent
        if ref is None or not ref.relative_path:
            return None
        candidate = os.path.realpath(
            _pom_path(os.path.join(os.path.dirname(module.path), ref.relative_path))
        )
        parent = self._by_path.get(candidate)
        if parent is None and os.path.isfile(candidate):
            try:
                parent = ReactorModule(candidate, read_pom_file(candidate))
            except PomParseError as e:
                logger.warning("Ignoring unreadable parent %s: %s", candidate, e)
                return None
        if parent is None:
            return None
        group_id = parent.raw.group_id or (parent.raw.parent.group_id if parent.raw.parent else None)
        version = parent.raw.version or (parent.raw.parent.version if parent.raw.parent else None)
        if (group_id, parent.raw.artifact_id, version) != (ref.group_id, ref.artifact_id, ref.version):
            return None
        self._by_path.setdefault(candidate, parent)
        return parent

    def _project(self, module: ReactorModule) -> ProjectModel:
        pom = self._effective(module, ())
        identity = pom.identity()
        project = ProjectModel(
            identity=identity,
            parent=pom.parent.identity() if pom.parent else None,
            remote_repositories=self._repositories(pom),
            plugin_repositories=merge_repositories(
                self.plugin_repositories, pom.plugin_repositories, [central()]
            ),
            base_dir=os.path.dirname(module.path),
        )
        for dep in pom.dependencies:
            if dep.scope == Scopes.SYSTEM.value:
                continue
            version = pinned_version(dep.version)
            if version is None:
                raise ResolutionFailure(
                    f"{dep.group_id}:{dep.artifact_id}",
                    f"{identity}: dependency version missing or not pinned ({dep.version})",
                )
            project.dependencies.append(replace(dep, version=version).to_dependency())
        project.dependency_management = [
            replace(managed, version=pinned_version(managed.version)).to_managed()
            for managed in pom.dependency_management.values()
        ]
        for plugin in pom.plugin_management.values():
            if plugin.version:
                project.plugin_management.append(plugin.to_plugin())
        for plugin in pom.plugins:
            if plugin.version:
                project.plugins.append(plugin.to_plugin())
            else:
                project.unversioned_plugins.append(f"{plugin.group_id}:{plugin.artifact_id}")
        for extension in pom.extensions:
            if extension.version:
                project.extensions.append(extension.identity())
            else:
                project.unversioned_plugins.append(f"{extension.group_id}:{extension.artifact_id}")
        return project


def _references(project: ProjectModel) -> Set[tuple]:
    refs = set()
    if project.parent is not None:
        refs.add(project.parent.gav)
    for dep in project.dependencies:
        refs.add(dep.identity.gav)
    for plugin in project.plugins:
        refs.add(plugin.identity.gav)
        refs.update(dep.identity.gav for dep in plugin.dependencies)
    refs.update(ext.gav for ext in project.extensions)
    return refs


def order_projects(projects: List[ProjectModel]) -> List[ProjectModel]:
    """Topologically sort modules; ties keep declaration order.

    Raises:
        ReactorError: modules reference each other in a cycle.
    """
    index = {project.identity.gav: i for i, project in enumerate(projects)}
    requires = {
        i: {index[ref] for ref in _references(project) if ref in index and index[ref] != i}
        for i, project in enumerate(projects)
    }
    ordered: List[ProjectModel] = []
    done: Set[int] = set()
    while len(done) < len(projects):
        ready = [i for i in range(len(projects)) if i not in done and requires[i] <= done]
        if not ready:
            stuck = ", ".join(str(projects[i]) for i in range(len(projects)) if i not in done)
            raise ReactorError(f"The projects in the reactor contain a cyclic reference: {stuck}")
        done.add(ready[0])
        ordered.append(projects[ready[0]])
    return ordered
