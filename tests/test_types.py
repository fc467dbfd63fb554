import pytest

from oas_forge.parser.types import TypeResolver


@pytest.fixture
def resolver():
    return TypeResolver()


class TestTypeResolver:
    @pytest.mark.parametrize(
        "descriptor, schema",
        [
            ("bool", {"type": "boolean"}),
            ("&str", {"type": "string"}),
            ("u32", {"type": "integer", "format": "int32"}),
            ("i64", {"type": "integer", "format": "int64"}),
            ("f64", {"type": "number", "format": "double"}),
            ("uuid::Uuid", {"type": "string", "format": "uuid"}),
            ("chrono::DateTime<Utc>", {"type": "string", "format": "date-time"}),
        ],
    )
    def test_primitives(self, resolver, descriptor, schema):
        assert resolver.resolve(descriptor) == (schema, True)

    def test_option_is_optional(self, resolver):
        assert resolver.resolve("Option<String>") == ({"type": "string"}, False)

    def test_sequences(self, resolver):
        schema, required = resolver.resolve("Vec<Option<i32>>")
        assert schema == {"type": "array", "items": {"type": "integer", "format": "int32"}}
        assert required is True
        assert resolver.resolve("[String]")[0] == {"type": "array", "items": {"type": "string"}}

    def test_maps(self, resolver):
        schema, _ = resolver.resolve("HashMap<String, u64>")
        assert schema == {"type": "object", "additionalProperties": {"type": "integer", "format": "int64"}}

    def test_transparent_wrappers(self, resolver):
        assert resolver.resolve("Box<Arc<bool>>") == ({"type": "boolean"}, True)

    def test_unknown_name_is_deferred_reference(self, resolver):
        assert resolver.resolve("models::User") == ({"$ref": "$User"}, True)

    def test_unparseable_falls_back_to_string(self, resolver):
        assert resolver.resolve("Vec<") == ({"type": "string"}, True)
