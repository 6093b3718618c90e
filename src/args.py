"""Argument parsing functionality for mvnmanifest."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="mvnmanifest",
        description=(
            "mvnmanifest - Record every remote artifact a Maven build needs, "
            "with its download URL and SHA-1, in a JSON manifest"
        ),
        add_help=True,
    )

    parser.add_argument("-f", "--file",
                        dest="POM_FILE",
                        help="Root POM of the build (default: pom.xml)",
                        action="store", type=str,
                        default=Constants.POM_XML_FILE)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help=f"Path to the manifest file (default: {Constants.DEFAULT_OUTPUT_FILE})",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--local-repository",
                        dest="LOCAL_REPOSITORY",
                        help=f"Local repository directory (default: {Constants.DEFAULT_LOCAL_REPOSITORY})",
                        action="store",
                        type=str)
    parser.add_argument("--repository",
                        dest="REPOSITORIES",
                        help="Additional remote repository as ID=URL (can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-j", "--jobs",
                        dest="JOBS",
                        help="Number of modules walked concurrently",
                        action="store",
                        type=int)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"HTTP timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=int)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if warnings are present.",
                        action="store_true")

    return parser.parse_args(argv)
