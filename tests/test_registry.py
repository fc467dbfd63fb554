from oas_forge.registry import Registry


class TestRegistry:
    def test_lookup_unknown_returns_none(self):
        registry = Registry()
        assert registry.lookup_fragment("Missing") is None
        assert registry.lookup_blueprint("Missing") is None

    def test_register_and_lookup_fragment(self):
        registry = Registry()
        registry.register_fragment("Common", [], "a: 1")
        fragment = registry.lookup_fragment("Common")
        assert fragment is not None
        assert fragment.body == "a: 1"
        assert fragment.params == []

    def test_reregistration_last_wins(self):
        registry = Registry()
        registry.register_blueprint("Page", ["T"], "items: $T")
        registry.register_blueprint("Page", ["U"], "data: $U")
        blueprint = registry.lookup_blueprint("Page")
        assert blueprint.params == ["U"]
        assert blueprint.body == "data: $U"

    def test_get_or_insert_concrete_computes_once(self):
        registry = Registry()
        calls = []

        def compute():
            calls.append(1)
            return "body"

        assert registry.get_or_insert_concrete("Page_User", compute) == "body"
        assert registry.get_or_insert_concrete("Page_User", compute) == "body"
        assert len(calls) == 1

    def test_cached_value_is_not_replaced(self):
        registry = Registry()
        registry.get_or_insert_concrete("Page_User", lambda: "first")
        assert registry.get_or_insert_concrete("Page_User", lambda: "second") == "first"
