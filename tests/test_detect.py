from pathlib import Path

from api_normalizer.parser.detect import detect_format

FIXTURES = Path(__file__).parent / "fixtures"


class TestDetectFormat:
    def test_detect_openapi_yaml(self):
        assert detect_format((FIXTURES / "petstore.yaml").read_text()) == "openapi"

    def test_detect_swagger_json(self):
        assert detect_format((FIXTURES / "petstore-swagger2.json").read_text()) == "openapi"

    def test_detect_markdown(self):
        assert detect_format((FIXTURES / "sample-api.md").read_text()) == "text"

    def test_json_without_version_key_is_text(self):
        assert detect_format('{"info": {"title": "x"}}') == "text"

    def test_malformed_json_falls_through_to_text(self):
        assert detect_format('{"openapi": "3.0.0",') == "text"

    def test_yaml_key_must_start_a_line(self):
        assert detect_format("Our docs follow openapi: 3.0 conventions") == "text"
        assert detect_format("info:\n  title: x\nswagger : '2.0'\n") == "openapi"

    def test_leading_whitespace_is_ignored(self):
        assert detect_format('\n   {"swagger": "2.0"}') == "openapi"

    def test_empty_input_is_text(self):
        assert detect_format("") == "text"
        assert detect_format("   \n") == "text"
