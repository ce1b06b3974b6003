"""Tests for identifier casing."""

from gateway_fieldgen.casing import (
    camel_case,
    camel_to_snake,
    lint_acronym,
    lower_pascal,
    package_name,
    pascal_case,
    starts_with_initialism,
)


def test_pascal_case_snake_words():
    """Test that underscore separated words are joined and capitalised."""
    assert pascal_case("foo_bar") == "FooBar"
    assert pascal_case("nested_nested_two") == "NestedNestedTwo"


def test_pascal_case_keeps_camel_case():
    """Test that only the first letter of a camelCase word changes."""
    assert pascal_case("fooBar") == "FooBar"
    assert pascal_case("nestedTwo") == "NestedTwo"


def test_pascal_case_initialisms():
    """Test that known initialisms are upper-cased as a whole."""
    assert pascal_case("user_id") == "UserID"
    assert pascal_case("url") == "URL"
    assert pascal_case("http_api") == "HTTPAPI"


def test_pascal_case_all_caps():
    """Test all-caps handling for single and multiple words."""
    assert pascal_case("ABC") == "ABC"
    assert pascal_case("FOO_BAR") == "FooBar"


def test_pascal_case_double_underscore():
    """Test that empty words are dropped."""
    assert pascal_case("foo__bar") == "FooBar"


def test_camel_case_headers():
    """Test camel casing of header names."""
    assert camel_case("x-uuid") == "xUUID"
    assert camel_case("content-type") == "contentType"
    assert camel_case("x-request-id") == "xRequestID"


def test_camel_case_package_segments():
    """Test camel casing of path derived package names."""
    assert camel_case("clients_bar_bar") == "clientsBarBar"
    assert camel_case("Foo") == "foo"


def test_starts_with_initialism():
    """Test that the longest initialism prefix wins."""
    assert starts_with_initialism("HTTPS") == "HTTPS"
    assert starts_with_initialism("HTTPServer") == "HTTP"
    assert starts_with_initialism("Server") == ""


def test_camel_to_snake():
    """Test conversion back to snake_case."""
    assert camel_to_snake("fooBar") == "foo_bar"
    assert camel_to_snake("userID") == "user_id"
    assert camel_to_snake("fooHTTPServer") == "foo_http_server"
    assert camel_to_snake("IDField") == "id_field"
    assert camel_to_snake("plain") == "plain"


def test_lower_pascal():
    """Test PascalCase with a lowered first letter."""
    assert lower_pascal("foo_bar") == "fooBar"


def test_lint_acronym():
    """Test that Titlecased initialisms are upper-cased."""
    assert lint_acronym("userId") == "UserID"
    assert lint_acronym("get_url") == "GetURL"


def test_package_name():
    """Test package names drop separators and case."""
    assert package_name("Clients-Bar_bar") == "clientsbarbar"
