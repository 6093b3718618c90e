"""One manifest-generation run over the modules of a build."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer
from manifest.accumulator import ManifestAccumulator
from manifest.writer import write_manifest
from resolution.models import ProjectModel
from resolution.service import ResolutionService
from resolution.walker import GraphWalker, WalkReport

logger = logging.getLogger(__name__)


class BuildSession:
    """Owns the session-wide accumulator and the manifest output path.

    Every module walked through the same session shares one accumulator, so
    an artifact needed by several modules is resolved and written once.
    """

    def __init__(self, output_file: str = Constants.DEFAULT_OUTPUT_FILE,
                 accumulator: Optional[ManifestAccumulator] = None):
        self.output_file = output_file
        self.accumulator = accumulator or ManifestAccumulator()
        self.written = False

    def process_module(self, project: ProjectModel, service: ResolutionService,
                       is_last: bool = False) -> WalkReport:
        """Walk one module; write the manifest after the last one.

        Raises:
            ModuleResolutionError: a parent or dependency of the module failed.
            OutputWriteFailure: the manifest could not be written.
        """
        logger.info("Resolving remote artifacts of %s", project)
        report = GraphWalker(service, self.accumulator).walk(project)
        report.raise_for_failures()
        if is_last:
            self.flush()
        return report

    def flush(self) -> int:
        """Write every recorded entry to the output file."""
        count = write_manifest(self.accumulator.entries(), self.output_file)
        self.written = True
        return count

    def run(self, projects: Sequence[ProjectModel], service: ResolutionService,
            jobs: int = Constants.DEFAULT_JOBS) -> List[WalkReport]:
        """Walk all modules in order and write the manifest once.

        Modules before the last one run on ``jobs`` threads; the last module
        starts only after all of them have finished.

        Returns:
            list: One WalkReport per module, in ``projects`` order.
        """
        if not projects:
            logger.warning("No modules to process")
            self.flush()
            return []
        *leading, last = projects
        with Timer() as timer:
            if jobs > 1 and len(leading) > 1:
                with ThreadPoolExecutor(max_workers=jobs) as pool:
                    futures = [pool.submit(self.process_module, p, service) for p in leading]
                    reports = [future.result() for future in futures]
            else:
                reports = [self.process_module(p, service) for p in leading]
            reports.append(self.process_module(last, service, is_last=True))
        if is_debug_enabled(logger):
            logger.debug(
                "Build session finished",
                extra=extra_context(
                    event="function_exit",
                    component="session",
                    action="run",
                    count=len(reports),
                    duration_ms=timer.duration_ms(),
                )
            )
        return reports
