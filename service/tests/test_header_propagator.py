"""Tests for propagating headers into typed fields."""

import pytest

from gateway_fieldgen.errors import InternalGeneratorFault, NonStringHeaderTarget
from gateway_fieldgen.field_mapper import FieldMapperEntry
from gateway_fieldgen.header_propagator import HeaderPropagator, parse_statement
from gateway_fieldgen.schema import (
    BinarySpec,
    BoolSpec,
    DoubleSpec,
    EnumSpec,
    FieldSpec,
    I8Spec,
    I16Spec,
    I64Spec,
    StringSpec,
    TypedefSpec,
)


class StubResolver:
    """Every IDL file is generated into package ``structs``."""

    def type_package_name(self, thrift_file):
        return "structs"


@pytest.fixture
def propagator():
    return HeaderPropagator(StubResolver())


def test_parse_statement():
    """Test parse calls and narrowing casts."""
    assert parse_statement(BoolSpec()) == ("strconv.ParseBool(key)", None)
    assert parse_statement(I16Spec(), "raw") == ("strconv.ParseInt(raw, 10, 16)", "int16")
    assert parse_statement(DoubleSpec()) == ("strconv.ParseFloat(key, 64)", None)


def test_parse_statement_byte():
    """Test that byte-sized integers have no parser."""
    with pytest.raises(InternalGeneratorFault):
        parse_statement(I8Spec())


def test_required_i64(propagator):
    """Test a parsed required integer without a zero value guard."""
    to_fields = [FieldSpec("i3", I64Spec(), required=True)]
    field_map = {"I3": FieldMapperEntry("x-int")}

    lines = propagator.propagate(None, to_fields, field_map)

    assert lines == [
        'if key, ok := headers.Get("x-int"); ok {',
        "\tif v, err := strconv.ParseInt(key, 10, 64); err == nil {",
        "\t\tin.I3 = v",
        "\t}",
        "}",
    ]


def test_i16_is_narrowed(propagator):
    """Test that small integers are cast after parsing."""
    to_fields = [FieldSpec("port", I16Spec(), required=True)]
    field_map = {"Port": FieldMapperEntry("x-port", override=True)}

    lines = propagator.propagate(None, to_fields, field_map)

    assert lines == [
        'if key, ok := headers.Get("x-port"); ok {',
        "\tif v, err := strconv.ParseInt(key, 10, 16); err == nil {",
        "\t\tval := int16(v)",
        "\t\tin.Port = val",
        "\t}",
        "}",
    ]


def test_optional_bool_override(propagator):
    """Test a pointer write of a parsed bool."""
    to_fields = [FieldSpec("flag", BoolSpec())]
    field_map = {"Flag": FieldMapperEntry("x-flag", override=True)}

    lines = propagator.propagate(None, to_fields, field_map)

    assert lines == [
        'if key, ok := headers.Get("x-flag"); ok {',
        "\tif v, err := strconv.ParseBool(key); err == nil {",
        "\t\tin.Flag = &v",
        "\t}",
        "}",
    ]


def test_integer_typedef(propagator):
    """Test that typedefs of parseable types are cast to the typedef."""
    millis = TypedefSpec(name="Millis", file="structs.thrift", target=I64Spec())
    to_fields = [FieldSpec("timeout", millis, required=True)]
    field_map = {"Timeout": FieldMapperEntry("x-timeout")}

    lines = propagator.propagate(None, to_fields, field_map)

    assert lines == [
        'if key, ok := headers.Get("x-timeout"); ok {',
        "\tif v, err := strconv.ParseInt(key, 10, 64); err == nil {",
        "\t\tval := structs.Millis(v)",
        "\t\tin.Timeout = val",
        "\t}",
        "}",
    ]


def test_enum_target(propagator):
    """Test that enums are unmarshalled from their text form."""
    color = EnumSpec(name="Color", file="structs.thrift", items=["RED", "GREEN"])
    to_fields = [FieldSpec("color", color)]
    field_map = {"Color": FieldMapperEntry("x-color")}

    lines = propagator.propagate(None, to_fields, field_map)

    assert lines == [
        'if key, ok := headers.Get("x-color"); ok {',
        "\tvar val structs.Color",
        "\tif err := val.UnmarshalText([]byte(key)); err == nil {",
        "\t\tif in.Color == nil {",
        "\t\t\tin.Color = &val",
        "\t\t}",
        "\t}",
        "}",
    ]


def test_string_target_behaves_like_populator(propagator):
    """Test that strings are copied without parsing."""
    to_fields = [FieldSpec("one", StringSpec(), required=True)]
    field_map = {"One": FieldMapperEntry("content-type", override=True)}

    lines = propagator.propagate(None, to_fields, field_map)

    assert lines == [
        'if key, ok := headers.Get("content-type"); ok {',
        "\tin.One = key",
        "}",
    ]


def test_byte_target_is_fault(propagator):
    """Test that a byte-sized integer target is a programming error."""
    to_fields = [FieldSpec("tiny", I8Spec(), required=True)]

    with pytest.raises(InternalGeneratorFault):
        propagator.propagate(None, to_fields, {"Tiny": FieldMapperEntry("x-tiny")})


def test_binary_target(propagator):
    """Test that binary fields cannot receive a header."""
    to_fields = [FieldSpec("blob", BinarySpec(), required=True)]

    with pytest.raises(NonStringHeaderTarget):
        propagator.propagate(None, to_fields, {"Blob": FieldMapperEntry("x-blob")})
