import pytest
from pydantic import ValidationError

from api_normalizer.parser.base import (
    ApiSpec,
    AuthScheme,
    Endpoint,
    Parameter,
    ParseResult,
    SchemaField,
    TagGroup,
    build_tag_groups,
)


def _make_endpoint(endpoint_id: str, tag: str = "default") -> Endpoint:
    return Endpoint(id=endpoint_id, method="GET", path=f"/{endpoint_id}", tag=tag)


class TestParameter:
    def test_create_required_param(self):
        p = Parameter(name="id", location="path", required=True, type="integer")
        assert p.name == "id"
        assert p.required is True
        assert p.description == ""
        assert p.enum is None

    def test_accepts_wire_alias(self):
        p = Parameter.model_validate({"name": "q", "in": "query"})
        assert p.location == "query"
        assert p.type == "string"

    def test_rejects_unknown_location(self):
        with pytest.raises(ValidationError):
            Parameter(name="body", location="body")

    def test_serializes_location_as_in(self):
        p = Parameter(name="id", location="path", required=True)
        assert p.model_dump(by_alias=True)["in"] == "path"


class TestEndpoint:
    def test_create_minimal_endpoint(self):
        ep = Endpoint(id="listUsers", method="GET", path="/users")
        assert ep.tag == "default"
        assert ep.parameters == ()
        assert ep.request_body is None
        assert ep.deprecated is False
        assert ep.key == ("GET", "/users")

    def test_rejects_unsupported_method(self):
        with pytest.raises(ValidationError):
            Endpoint(id="head", method="HEAD", path="/users")

    def test_is_immutable(self):
        ep = Endpoint(id="listUsers", method="GET", path="/users")
        with pytest.raises(ValidationError):
            ep.path = "/other"

    def test_collections_are_tuples(self):
        ep = Endpoint(
            id="getUser",
            method="GET",
            path="/users/{id}",
            parameters=[Parameter(name="id", location="path", required=True)],
        )
        assert isinstance(ep.parameters, tuple)
        with pytest.raises(AttributeError):
            ep.parameters.append(Parameter(name="extra", location="query"))

        spec = ApiSpec(base_url="https://x.io", auth=AuthScheme(type="none"), endpoints=[ep], source_type="text")
        assert isinstance(spec.endpoints, tuple)
        assert ParseResult(spec=spec, warnings=["w"]).warnings == ("w",)


class TestSchemaField:
    def test_nested_fields(self):
        field = SchemaField(
            name="owner",
            type="object",
            nested=[SchemaField(name="email", required=True)],
        )
        assert field.nested[0].name == "email"
        assert field.nested[0].type == "string"


class TestApiSpec:
    def test_defaults_and_camel_case_dump(self):
        spec = ApiSpec(
            base_url="https://x.io",
            auth=AuthScheme(type="none"),
            source_type="openapi",
        )
        assert spec.title == "Untitled API"
        assert spec.version == "1.0.0"

        data = spec.model_dump(by_alias=True)
        assert data["baseUrl"] == "https://x.io"
        assert data["sourceType"] == "openapi"
        assert data["paginationHints"] == ()

    def test_tag_map_and_lookup(self):
        endpoints = [_make_endpoint("a", "Users"), _make_endpoint("b")]
        spec = ApiSpec(
            base_url="https://x.io",
            auth=AuthScheme(type="none"),
            endpoints=endpoints,
            tags=build_tag_groups(endpoints),
            source_type="text",
        )
        assert spec.tag_map() == {"Users": ["a"], "default": ["b"]}
        assert spec.get_endpoint("b").path == "/b"
        assert spec.get_endpoint("missing") is None

    def test_parse_result_roundtrip(self):
        result = ParseResult(
            spec=ApiSpec(base_url="https://x.io", auth=AuthScheme(type="bearer"), source_type="text"),
            warnings=["w"],
            todos=["TODO: t"],
        )
        again = ParseResult.model_validate_json(result.model_dump_json(by_alias=True))
        assert again == result


class TestBuildTagGroups:
    def test_declared_tags_come_first(self):
        endpoints = [_make_endpoint("a", "pets"), _make_endpoint("b", "store")]
        groups = build_tag_groups(endpoints, [TagGroup(name="store", description="Orders"), TagGroup(name="admin")])
        assert [g.name for g in groups] == ["store", "admin", "pets"]
        assert groups[0].description == "Orders"
        assert groups[0].endpoint_ids == ("b",)
        assert groups[1].endpoint_ids == ()

    def test_every_endpoint_in_exactly_one_group(self):
        endpoints = [_make_endpoint("a", "x"), _make_endpoint("b", "y"), _make_endpoint("c", "x")]
        groups = build_tag_groups(endpoints)
        ids = [i for g in groups for i in g.endpoint_ids]
        assert sorted(ids) == ["a", "b", "c"]
