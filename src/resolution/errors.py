"""Exceptions raised while resolving artifacts and writing the manifest."""
from __future__ import annotations

from typing import List, Optional, Tuple


class ManifestError(Exception):
    """Base class for every error this tool raises."""


class ArtifactError(ManifestError):
    """A failure attached to one artifact coordinate."""

    def __init__(self, coordinate: object, message: str, cause: Optional[BaseException] = None):
        self.coordinate = str(coordinate)
        self.cause = cause
        detail = f"{message} for {self.coordinate}"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)


class ResolutionFailure(ArtifactError):
    """Reading a descriptor or collecting dependencies failed."""


class RepositoryUnreachable(ResolutionFailure):
    """None of the candidate repositories could be contacted at all."""


class UnresolvableSnapshot(ArtifactError):
    """The version is an unresolved snapshot and cannot be pinned to a checksum."""

    def __init__(self, coordinate: object):
        super().__init__(coordinate, "Unresolved snapshot version")


class NoChecksumAvailable(ArtifactError):
    """The repository layout advertises no usable SHA-1 checksum."""


class TransportError(ArtifactError):
    """Fetching a resource from a remote repository failed."""


class OutputWriteFailure(ManifestError):
    """The manifest file could not be written."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Writing {path}: {cause}")


class ModuleResolutionError(ManifestError):
    """One or more strict artifacts of a module could not be resolved.

    Raised after every root of the module has been processed; ``failures``
    carries all of them, the message names the first.
    """

    def __init__(self, module: str, failures: List[Tuple[str, ArtifactError]]):
        self.module = module
        self.failures = failures
        first_role, first_error = failures[0]
        message = f"{module}: {first_error} ({first_role})"
        if len(failures) > 1:
            message = f"{message} and {len(failures) - 1} more failure(s)"
        super().__init__(message)

    @property
    def unreachable(self) -> bool:
        """True when every failure is a repository that could not be contacted."""
        return bool(self.failures) and all(
            isinstance(err, RepositoryUnreachable) for _, err in self.failures
        )
