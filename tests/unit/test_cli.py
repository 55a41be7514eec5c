"""Unit tests for the extract_job command-line script."""

import importlib.util
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from jobtrack.contexts.extraction import ConfigurationError, NormalizedRecord

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "extract_job.py"

JOB_TEXT = "Data Engineer at Acme (Bengaluru). Python, Spark and Airflow."

RECORD = NormalizedRecord(
    title="Data Engineer",
    company="Acme",
    location="Bengaluru",
    role="Data Engineer",
    experience="Not specified",
    tech_stack=["Python", "Spark", "Airflow"],
)

runner = CliRunner()


@pytest.fixture
def cli(monkeypatch):
    """The script loaded as a module, with extraction replaced by a recorder."""
    spec = importlib.util.spec_from_file_location("extract_job_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    module.received = []

    def fake_extract_job(text):
        module.received.append(text)
        return RECORD

    monkeypatch.setattr(module, "extract_job", fake_extract_job)
    return module


@pytest.mark.unit
class TestExtractJobScript:
    def test_reads_stdin(self, cli):
        result = runner.invoke(cli.app, ["-"], input=JOB_TEXT)

        assert result.exit_code == 0
        assert cli.received == [JOB_TEXT]
        payload = json.loads(result.stdout)
        assert payload["title"] == "Data Engineer"
        assert payload["techStack"] == ["Python", "Spark", "Airflow"]

    def test_reads_file_compact(self, cli, tmp_path):
        job_file = tmp_path / "job.txt"
        job_file.write_text(JOB_TEXT, encoding="utf-8")

        result = runner.invoke(cli.app, [str(job_file), "--compact"])

        assert result.exit_code == 0
        assert cli.received == [JOB_TEXT]
        assert result.stdout.strip().count("\n") == 0
        assert json.loads(result.stdout)["company"] == "Acme"

    def test_missing_file_exits_1(self, cli, tmp_path):
        result = runner.invoke(cli.app, [str(tmp_path / "absent.txt")])

        assert result.exit_code == 1
        assert "File not found" in result.output
        assert cli.received == []

    def test_configuration_error_exits_1(self, cli, monkeypatch):
        def refuse(text):
            raise ConfigurationError("OPENAI_API_KEY is not set")

        monkeypatch.setattr(cli, "extract_job", refuse)

        result = runner.invoke(cli.app, ["-"], input=JOB_TEXT)

        assert result.exit_code == 1
        assert "ERROR: OPENAI_API_KEY is not set" in result.output

    @pytest.mark.usefixtures("restore_logger")
    def test_log_dir_writes_session_log(self, cli, tmp_path):
        result = runner.invoke(cli.app, ["-", "--log-dir", str(tmp_path)], input=JOB_TEXT)

        assert result.exit_code == 0
        (log_file,) = tmp_path.glob("extract_*/extract.log")
        assert "Model: " in log_file.read_text()
