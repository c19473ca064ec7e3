"""Tests for naming helpers and the run-wide identifier table."""
import pytest
from migrator.generators.utils import (
    IdentifierTable,
    derive_identifiers,
    split_words,
    strip_request_verb,
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
)


def test_split_words_handles_every_style():
    assert split_words("getUserProfile") == ["get", "user", "profile"]
    assert split_words("HTMLParser") == ["html", "parser"]
    assert split_words("user_profile-page") == ["user", "profile", "page"]


def test_case_conversions():
    assert to_kebab_case("OrderHistory") == "order-history"
    assert to_camel_case("order_history") == "orderHistory"
    assert to_pascal_case("order-history") == "OrderHistory"


def test_strip_request_verb_keeps_something():
    assert strip_request_verb("doGetUsers") == ["users"]
    assert strip_request_verb("postOrder") == ["order"]
    assert strip_request_verb("doGet") == ["do", "get"]


def test_derive_identifiers():
    ids = derive_identifiers("getUserProfile")
    assert ids.name == "getUserProfile"
    assert ids.slug == "user-profile"
    assert ids.camel == "userProfile"
    assert ids.pascal == "UserProfile"


class TestIdentifierTable:

    def test_build_freezes_table(self):
        table = IdentifierTable.build(["doGetUsers", "onEdit"], ["Index"])
        assert table.frozen
        assert table.function("doGetUsers").slug == "users"
        assert table.template("Index").pascal == "Index"
        with pytest.raises(RuntimeError):
            table.register_function("late")

    def test_unknown_name_raises_key_error(self):
        table = IdentifierTable.build(["a"], [])
        with pytest.raises(KeyError):
            table.function("b")

    def test_lookups_return_same_object(self):
        table = IdentifierTable.build(["doGetUsers"], [])
        assert table.function("doGetUsers") is table.function("doGetUsers")
        assert table.has_function("doGetUsers")
        assert not table.has_function("Index")
