import json
import logging
from pathlib import Path

from click.testing import CliRunner

from api_normalizer.cli import main

FIXTURES = Path(__file__).parent / "fixtures"


class TestCliNormalize:
    def test_normalize_openapi_to_file(self, tmp_path):
        output_file = tmp_path / "out" / "spec.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "normalize", str(FIXTURES / "petstore.yaml"),
            "-o", str(output_file),
        ])

        assert result.exit_code == 0
        data = json.loads(output_file.read_text(encoding="utf-8"))
        assert data["spec"]["baseUrl"] == "https://petstore.example.com/v1"
        assert data["spec"]["sourceType"] == "openapi"
        assert data["spec"]["endpoints"][0]["parameters"][0]["in"] == "query"
        assert data["todos"] == []

    def test_normalize_text_reports_diagnostics(self, tmp_path):
        doc = tmp_path / "notes.txt"
        doc.write_text("Nothing useful here.", encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(main, ["normalize", str(doc), "-o", str(tmp_path / "spec.json")])

        assert result.exit_code == 0
        assert result.output.count("No endpoints could be extracted") == 1
        data = json.loads((tmp_path / "spec.json").read_text(encoding="utf-8"))
        assert data["spec"]["sourceType"] == "text"
        assert data["spec"]["auth"]["type"] == "unknown"

    def test_findings_are_not_logged_as_warnings(self, tmp_path, caplog):
        doc = tmp_path / "notes.txt"
        doc.write_text("Nothing useful here.", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            result = CliRunner().invoke(main, ["normalize", str(doc), "-o", str(tmp_path / "spec.json")])

        assert result.exit_code == 0
        assert "warning: No endpoints could be extracted" in result.output
        assert not [r for r in caplog.records if r.name == "api_normalizer.parser.diagnostics"]

    def test_parse_error_exits_nonzero(self, tmp_path):
        doc = tmp_path / "broken.json"
        doc.write_text('{"openapi": "3.0.0", "paths": {', encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(main, ["normalize", str(doc), "--format", "openapi"])

        assert result.exit_code == 1
        assert "Could not parse input as JSON or YAML" in result.output

    def test_env_settings_are_applied(self, tmp_path):
        doc = tmp_path / "notes.md"
        doc.write_text("GET /things", encoding="utf-8")

        runner = CliRunner(env={"API_NORMALIZER_PLACEHOLDER_BASE_URL": "https://placeholder.test"})
        result = runner.invoke(main, ["normalize", str(doc), "-o", str(tmp_path / "spec.json")])

        assert result.exit_code == 0
        data = json.loads((tmp_path / "spec.json").read_text(encoding="utf-8"))
        assert data["spec"]["baseUrl"] == "https://placeholder.test"


class TestCliDetect:
    def test_detect_formats(self):
        runner = CliRunner()
        assert runner.invoke(main, ["detect", str(FIXTURES / "petstore-swagger2.json")]).output.strip() == "openapi"
        assert runner.invoke(main, ["detect", str(FIXTURES / "sample-api.md")]).output.strip() == "text"
