"""mvnmanifest - record the remote artifacts a Maven build needs.

Reads a (multi-module) Maven build, finds every artifact that comes from a
remote repository and writes a JSON manifest of repository-relative path,
download URL and SHA-1 for each, sorted so the file is byte-stable.

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from constants import ExitCodes
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from common.http_client import new_session
from args import parse_args
from cli_config import ConfigError, ManifestConfig, load_config
from build_session import BuildSession
from resolution.errors import (
    ManifestError,
    ModuleResolutionError,
    OutputWriteFailure,
    RepositoryUnreachable,
)
from maven.local_repo import LocalRepository
from maven.pom import PomParseError
from maven.reactor import ReactorError, ReactorLoader
from maven.service import MavenResolutionService

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure console logging and the optional --logfile handler."""
    configure_logging(getattr(args, "LOG_LEVEL", None))
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def generate_manifest(config: ManifestConfig) -> int:
    """Load the reactor, walk every module and write the manifest.

    Args:
        config: Effective run configuration.

    Returns:
        int: Number of warnings (lenient failures and skipped snapshots).

    Raises:
        ReactorError: the build structure is unusable.
        ModuleResolutionError: a strict artifact of some module failed.
        OutputWriteFailure: the manifest could not be written.
    """
    service = MavenResolutionService(
        local_repository=LocalRepository(config.local_repository),
        session=new_session(),
        timeout=config.timeout,
    )
    loader = ReactorLoader(service, config.repositories, config.plugin_repositories)
    projects = loader.load(config.pom_file)
    logger.info("Build order: %s", ", ".join(str(p) for p in projects))

    session = BuildSession(config.output)
    reports = session.run(projects, service, jobs=config.jobs)
    return sum(report.warnings for report in reports)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        config = ManifestConfig.from_args(args, load_config(getattr(args, "CONFIG", None)))
    except ConfigError as e:
        logger.error("%s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    config.apply()

    if not os.path.exists(config.pom_file):
        logger.error("File not found: %s, aborting", config.pom_file)
        sys.exit(ExitCodes.FILE_ERROR.value)

    try:
        warnings = generate_manifest(config)
    except ModuleResolutionError as e:
        logger.error("%s", e)
        if e.unreachable:
            sys.exit(ExitCodes.CONNECTION_ERROR.value)
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)
    except RepositoryUnreachable as e:
        logger.error("%s, aborting", e)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except (OutputWriteFailure, ReactorError, PomParseError) as e:
        logger.error("%s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except ManifestError as e:
        logger.error("Failed to read the build: %s", e)
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)

    if warnings:
        logger.warning("%d artifact(s) were skipped or could not be resolved.", warnings)
        if args.ERROR_ON_WARNINGS:
            logger.error("Warnings present, exiting with non-zero status code.")
            sys.exit(ExitCodes.EXIT_WARNINGS.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome="success")
        )
    sys.exit(ExitCodes.SUCCESS.value)

if __name__ == "__main__":
    main()
