"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    CONNECTION_ERROR = 2
    FILE_ERROR = 1
    EXIT_WARNINGS = 3
    RESOLUTION_ERROR = 4


class Scopes(Enum):
    """Dependency scopes understood by the resolver.

    Args:
        Enum (string): Maven dependency scopes.
    """

    COMPILE = "compile"
    RUNTIME = "runtime"
    PROVIDED = "provided"
    TEST = "test"
    SYSTEM = "system"
    IMPORT = "import"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CENTRAL_ID = "central"
    CENTRAL_URL = "https://repo.maven.apache.org/maven2"
    DEFAULT_LAYOUT = "default"
    DEFAULT_OUTPUT_FILE = "manifest.json"
    DEFAULT_LOCAL_REPOSITORY = "~/.m2/repository"
    REMOTE_RECORD_FILE = "_remote.repositories"
    POM_XML_FILE = "pom.xml"
    DEFAULT_PLUGIN_GROUP = "org.apache.maven.plugins"
    SNAPSHOT_MARKER = "SNAPSHOT"
    CHECKSUM_ALGORITHM = "SHA-1"
    SHA1_HEX_LENGTH = 40
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "MVNMANIFEST_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "mvnmanifest/1.0"
    DEFAULT_JOBS = 1
    # Scopes whose transitive dependencies are collected ("runtime" resolution)
    RUNTIME_SCOPES = [Scopes.COMPILE.value, Scopes.RUNTIME.value]
