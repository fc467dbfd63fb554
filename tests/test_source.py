from pathlib import Path

import pytest
import yaml

from oas_forge.errors import SourceParseError
from oas_forge.parser.base import BlueprintItem, FragmentItem, RouteItem, SchemaItem
from oas_forge.parser.detect import detect_format
from oas_forge.parser.scanner import discover_sources, read_source, scan
from oas_forge.parser.source import collect_blocks, extract_items, wrap_in_schema

FIXTURES = Path(__file__).parent / "fixtures"
SRC = Path("lib.rs")


class TestCollectBlocks:
    def test_item_block_takes_declaration_name(self):
        text = "/// Docs\n#[derive(Debug)]\npub struct User {\n}\n"
        block = collect_blocks(text)[0]
        assert block.lines == ["Docs"]
        assert block.line == 1
        assert (block.item_kind, block.item_name) == ("struct", "User")

    def test_async_fn(self):
        block = collect_blocks("/// @route GET /\npub async fn index() {}")[0]
        assert (block.item_kind, block.item_name) == ("fn", "index")

    def test_inner_and_outer_blocks_split(self):
        blocks = collect_blocks("//! file docs\n/// item docs\nfn f() {}")
        assert [b.inner for b in blocks] == [True, False]

    def test_plain_comments_are_ignored(self):
        assert collect_blocks("// not docs\n//// not docs either\nfn f() {}") == []


class TestExtractItems:
    def test_block_without_directive_is_not_exported(self):
        assert extract_items("/// Just a doc comment\nstruct A;", SRC) == []

    def test_schema_named_after_struct(self):
        items = extract_items("/// A user\n/// @openapi\n/// type: object\npub struct User;", SRC)
        assert len(items) == 1
        item = items[0]
        assert isinstance(item, SchemaItem)
        assert item.name == "User"
        assert yaml.safe_load(item.content) == {
            "components": {"schemas": {"User": {"type": "object", "description": "A user"}}}
        }

    def test_empty_schema_defaults_to_object(self):
        item = extract_items("/// @openapi\nstruct Empty;", SRC)[0]
        assert yaml.safe_load(item.content)["components"]["schemas"]["Empty"] == {"type": "object"}

    def test_rename(self):
        item = extract_items('/// @openapi rename "Person"\n/// type: object\nstruct User;', SRC)[0]
        assert "Person" in yaml.safe_load(item.content)["components"]["schemas"]

    def test_root_keys_stay_unwrapped(self):
        text = "//! @openapi\n//! openapi: 3.0.3\n//! info:\n//!   title: T\n//!   version: '1'"
        item = extract_items(text, SRC)[0]
        assert yaml.safe_load(item.content)["info"]["title"] == "T"

    def test_openapi_type(self):
        item = extract_items("//! @openapi-type Money\n//! type: string\n//! format: decimal", SRC)[0]
        assert yaml.safe_load(item.content) == {
            "components": {"schemas": {"Money": {"type": "string", "format": "decimal"}}}
        }

    def test_fragment_with_params(self):
        item = extract_items("//! @openapi-fragment Ref(T)\n//! $ref: $T", SRC)[0]
        assert isinstance(item, FragmentItem)
        assert (item.name, item.params, item.content) == ("Ref", ["T"], "$ref: $T")

    def test_blueprint(self):
        text = "/// @openapi<T>\n/// properties:\n///   data: { $ref: $T }\npub struct Page<T> {}"
        item = extract_items(text, SRC)[0]
        assert isinstance(item, BlueprintItem)
        assert item.name == "Page"
        assert item.params == ["T"]
        assert item.content == "properties:\n  data: { $ref: $T }"

    def test_route_uses_function_name(self):
        item = extract_items("/// Get it\n/// @route GET /items\nasync fn get_items() {}", SRC)[0]
        assert isinstance(item, RouteItem)
        assert item.operation_id == "get_items"
        assert item.content == "Get it\n@route GET /items"

    def test_route_operation_id_derived_from_path(self):
        item = extract_items('//! @route GET /virtual/{id: u32 "Id"}/users', SRC)[0]
        assert item.operation_id == "get_virtual_id_users"

    def test_wrap_in_schema(self):
        assert wrap_in_schema("A", "type: object") == "components:\n  schemas:\n    A:\n      type: object"


class TestDetectFormat:
    def test_by_suffix(self):
        assert detect_format(Path("x.rs")) == "source"
        assert detect_format(Path("x.yml")) == "yaml"
        assert detect_format(Path("x.json")) == "json"

    def test_sniffs_unknown_suffix(self, tmp_path):
        json_file = tmp_path / "spec.txt"
        json_file.write_text('{"openapi": "3.0.3"}')
        yaml_file = tmp_path / "spec.conf"
        yaml_file.write_text("openapi: 3.0.3\n")
        assert detect_format(json_file) == "json"
        assert detect_format(yaml_file) == "yaml"


class TestScanner:
    def test_discover_sources_sorted(self):
        found = discover_sources([FIXTURES / "api"])
        assert [p.name for p in found] == ["main.rs", "models.rs", "routes.rs"]

    def test_missing_input_dir_is_skipped(self, tmp_path):
        assert discover_sources([tmp_path / "nope"]) == []

    def test_scan_appends_includes(self):
        files = scan([FIXTURES / "api"], [FIXTURES / "errors.yaml"])
        assert [f.format for f in files] == ["source", "source", "source", "yaml"]
        include = files[-1].extract()
        assert len(include) == 1
        assert isinstance(include[0], SchemaItem)

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(SourceParseError) as exc:
            read_source(tmp_path / "gone.yaml")
        assert exc.value.path == tmp_path / "gone.yaml"
