"""Tests for argument parsing, configuration and the CLI entry point."""
import json
from unittest.mock import MagicMock, patch

import pytest

from args import parse_args
from cli_config import ConfigError, ManifestConfig, load_config
from constants import Constants, ExitCodes
from maven.layout import artifact_path
from resolution.errors import (
    ModuleResolutionError,
    OutputWriteFailure,
    RepositoryUnreachable,
    ResolutionFailure,
)
from resolution.models import ArtifactIdentity, Repository
import mvnmanifest

LIB = ArtifactIdentity("com.example", "lib", "jar", None, "1.2.3")
EXAMPLE_URL = "https://repo.example/maven2"


@pytest.fixture(autouse=True)
def _restore_constants():
    central_url, timeout = Constants.CENTRAL_URL, Constants.REQUEST_TIMEOUT
    yield
    Constants.CENTRAL_URL, Constants.REQUEST_TIMEOUT = central_url, timeout


class TestParseArgs:
    """Command line flags."""

    def test_defaults(self):
        args = parse_args([])
        assert args.POM_FILE == "pom.xml"
        assert args.OUTPUT is None
        assert args.REPOSITORIES == []
        assert args.LOG_LEVEL == "INFO"
        assert args.ERROR_ON_WARNINGS is False

    def test_repeatable_repository(self):
        args = parse_args(["--repository", "a=https://a", "--repository", "b=https://b", "-j", "4"])
        assert args.REPOSITORIES == ["a=https://a", "b=https://b"]
        assert args.JOBS == 4

    def test_invalid_loglevel(self):
        with pytest.raises(SystemExit):
            parse_args(["--loglevel", "CHATTY"])


class TestConfig:
    """YAML config file and precedence."""

    def test_load_config(self, tmp_path):
        path = tmp_path / "mvnmanifest.yml"
        path.write_text(
            "output: out.json\n"
            "jobs: 3\n"
            "repositories:\n"
            "  - id: internal\n"
            "    url: https://repo.internal/maven/\n",
            encoding="utf-8",
        )
        data = load_config(str(path))
        assert data["output"] == "out.json"
        config = ManifestConfig.from_args(parse_args([]), data)
        assert config.output == "out.json"
        assert config.jobs == 3
        assert config.repositories == [Repository("internal", "https://repo.internal/maven")]

    def test_no_config(self):
        assert load_config(None) == {}
        config = ManifestConfig.from_args(parse_args([]), {})
        assert config.output == Constants.DEFAULT_OUTPUT_FILE
        assert config.jobs == Constants.DEFAULT_JOBS

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "absent.yml"))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("output: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_cli_wins_over_file(self):
        args = parse_args(["-o", "cli.json", "--repository", "cli=https://cli", "--timeout", "5"])
        file_config = {
            "output": "file.json",
            "timeout": 60,
            "repositories": [{"id": "file", "url": "https://file"}],
        }
        config = ManifestConfig.from_args(args, file_config)
        assert config.output == "cli.json"
        assert config.timeout == 5
        assert [r.id for r in config.repositories] == ["cli", "file"]

    def test_invalid_jobs(self):
        with pytest.raises(ConfigError):
            ManifestConfig.from_args(parse_args([]), {"jobs": "many"})
        with pytest.raises(ConfigError):
            ManifestConfig.from_args(parse_args(["-j", "0"]), {})

    def test_invalid_repository_entry(self):
        with pytest.raises(ConfigError):
            ManifestConfig.from_args(parse_args([]), {"repositories": [{"id": "no-url"}]})

    def test_apply_publishes_tunables(self):
        config = ManifestConfig(central_url="https://mirror.example/maven2", timeout=9)
        config.apply()
        assert Constants.CENTRAL_URL == "https://mirror.example/maven2"
        assert Constants.REQUEST_TIMEOUT == 9


class TestMainExitCodes:
    """Exit codes of the CLI."""

    def _pom(self, tmp_path):
        path = tmp_path / "pom.xml"
        path.write_text("<project><groupId>g</groupId><artifactId>a</artifactId><version>1</version></project>")
        return str(path)

    def _run(self, argv):
        with pytest.raises(SystemExit) as excinfo:
            mvnmanifest.main(argv)
        return excinfo.value.code

    def test_missing_pom(self, tmp_path):
        assert self._run(["-f", str(tmp_path / "nope.xml")]) == ExitCodes.FILE_ERROR.value

    def test_bad_config(self, tmp_path):
        code = self._run(["-f", self._pom(tmp_path), "-c", str(tmp_path / "missing.yml")])
        assert code == ExitCodes.FILE_ERROR.value

    @patch("mvnmanifest.generate_manifest", return_value=0)
    def test_success(self, mock_generate, tmp_path):
        assert self._run(["-f", self._pom(tmp_path)]) == ExitCodes.SUCCESS.value
        config = mock_generate.call_args.args[0]
        assert config.pom_file == self._pom(tmp_path)

    @patch("mvnmanifest.generate_manifest", return_value=2)
    def test_warnings_only_fail_when_requested(self, _mock_generate, tmp_path):
        pom = self._pom(tmp_path)
        assert self._run(["-f", pom]) == ExitCodes.SUCCESS.value
        assert self._run(["-f", pom, "--error-on-warnings"]) == ExitCodes.EXIT_WARNINGS.value

    def test_resolution_error(self, tmp_path):
        error = ModuleResolutionError("g:a:1", [("dependency", ResolutionFailure(LIB, "Not found in central"))])
        with patch("mvnmanifest.generate_manifest", side_effect=error):
            assert self._run(["-f", self._pom(tmp_path)]) == ExitCodes.RESOLUTION_ERROR.value

    def test_unreachable_repositories_are_a_connection_error(self, tmp_path):
        error = ModuleResolutionError(
            "g:a:1", [("dependency", RepositoryUnreachable(LIB, "Unable to reach central"))]
        )
        with patch("mvnmanifest.generate_manifest", side_effect=error):
            assert self._run(["-f", self._pom(tmp_path)]) == ExitCodes.CONNECTION_ERROR.value

    def test_mixed_failures_are_a_resolution_error(self, tmp_path):
        error = ModuleResolutionError("g:a:1", [
            ("parent", RepositoryUnreachable(LIB, "Unable to reach central")),
            ("dependency", ResolutionFailure(LIB, "Not found in central")),
        ])
        with patch("mvnmanifest.generate_manifest", side_effect=error):
            assert self._run(["-f", self._pom(tmp_path)]) == ExitCodes.RESOLUTION_ERROR.value

    def test_unreachable_parent_while_loading_the_reactor(self, tmp_path):
        error = RepositoryUnreachable(LIB, "Unable to reach central")
        with patch("mvnmanifest.generate_manifest", side_effect=error):
            assert self._run(["-f", self._pom(tmp_path)]) == ExitCodes.CONNECTION_ERROR.value

    def test_output_error(self, tmp_path):
        error = OutputWriteFailure("/readonly/manifest.json", OSError("read-only"))
        with patch("mvnmanifest.generate_manifest", side_effect=error):
            assert self._run(["-f", self._pom(tmp_path)]) == ExitCodes.FILE_ERROR.value


class TestEndToEnd:
    """A one-module build resolved against a mocked repository."""

    POM = """<project xmlns="http://maven.apache.org/POM/4.0.0">
      <modelVersion>4.0.0</modelVersion>
      <groupId>com.example</groupId>
      <artifactId>app</artifactId>
      <version>1.0</version>
      <dependencies>
        <dependency>
          <groupId>com.example</groupId>
          <artifactId>lib</artifactId>
          <version>1.2.3</version>
        </dependency>
        <dependency>
          <groupId>com.example</groupId>
          <artifactId>wip</artifactId>
          <version>0.1-SNAPSHOT</version>
        </dependency>
      </dependencies>
    </project>"""

    LIB_POM = """<project>
      <groupId>com.example</groupId>
      <artifactId>lib</artifactId>
      <version>1.2.3</version>
    </project>"""

    def test_manifest(self, tmp_path):
        (tmp_path / "pom.xml").write_text(self.POM, encoding="utf-8")
        out = tmp_path / "manifest.json"
        pom_path = artifact_path(LIB.pom())

        def pom_get(url, **kwargs):
            if url == f"{EXAMPLE_URL}/{pom_path}":
                return MagicMock(status_code=200, text=self.LIB_POM)
            return MagicMock(status_code=404)

        def checksum_get(url, **kwargs):
            digest = "a" * 40 if url.endswith(".jar.sha1") else "b" * 40
            return MagicMock(status_code=200, content=f"{digest}  file\n".encode("utf-8"))

        argv = [
            "-f", str(tmp_path / "pom.xml"),
            "-o", str(out),
            "--local-repository", str(tmp_path / "m2"),
            "--repository", f"example={EXAMPLE_URL}",
        ]
        with patch("maven.service.safe_get", MagicMock(side_effect=pom_get)), \
                patch("maven.transport.safe_get", MagicMock(side_effect=checksum_get)):
            with pytest.raises(SystemExit) as excinfo:
                mvnmanifest.main(argv)

        assert excinfo.value.code == ExitCodes.SUCCESS.value
        assert json.loads(out.read_text(encoding="utf-8")) == [
            {
                "path": "com/example/lib/1.2.3/lib-1.2.3.jar",
                "url": "https://repo.example/maven2/com/example/lib/1.2.3/lib-1.2.3.jar",
                "sha1": "a" * 40,
            },
            {
                "path": "com/example/lib/1.2.3/lib-1.2.3.pom",
                "url": "https://repo.example/maven2/com/example/lib/1.2.3/lib-1.2.3.pom",
                "sha1": "b" * 40,
            },
        ]
