"""Tests for the schema parser"""

import os

import pytest

from strictenc.codec import FieldRole, InvalidDirective, Kind, TypeRef, Variant
from strictenc.schema import ValidationError, load, parse, parse_type

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def read_schema():
    with open(f"{FILE_DIR}/channel.strict") as f:
        return f.read()


def describe_parse():
    def parses_types_in_order(expect):
        types = parse(read_schema())
        expect([t.name for t in types]) == [
            "Channel",
            "Skipping",
            "Update",
            "Flag",
            "CustomValues",
            "Message",
        ]

    def parses_struct_fields(expect):
        channel = parse(read_schema())[0]
        expect(channel.kind) == Kind.STRUCT
        expect(channel.config.use_tlv) == True
        expect([f.name for f in channel.fields]) == [
            "id",
            "capacity",
            "flags",
            "alias",
            "fee",
            "unknown",
        ]
        expect(channel.fields[2].type) == TypeRef("list", (TypeRef("Flag"),))
        expect(channel.fields[3].role) == FieldRole.TLV_TAGGED
        expect(channel.fields[3].tlv_tag) == 1
        expect(channel.fields[5].role) == FieldRole.TLV_CAPTURE

    def parses_skip_directive(expect):
        skipping = parse(read_schema())[1]
        expect(skipping.fields[1].role) == FieldRole.SKIPPED

    def parses_enum_directives(expect):
        custom = parse(read_schema())[4]
        expect(custom.kind) == Kind.UNION
        expect(custom.config.by_value) == True
        expect(custom.config.repr_width) == 4
        expect([v.value for v in custom.variants]) == [1, 2]
        expect([v.explicit_value for v in custom.variants]) == [None, 0x10]

    def parses_variant_fields(expect):
        message = parse(read_schema())[5]
        expect(message.config.repr_width) == 2
        expect([v.name for v in message.variants]) == ["Ping", "Data", "Close"]
        expect([f.name for f in message.variants[1].fields]) == ["payload", "seq"]
        expect(message.variants[1].explicit_value) == 8

    def ignores_comments_and_commas(expect):
        types = parse(
            """
            # leading comment
            struct Point { x: i32, y: i32, }  # trailing comment
            """
        )
        expect([f.name for f in types[0].fields]) == ["x", "y"]


def describe_parse_type():
    def parses_nested_containers(expect):
        expect(parse_type("option<list<u8>>")) == TypeRef(
            "option", (TypeRef("list", (TypeRef("u8"),)),)
        )
        expect(parse_type("map<u16, bytes>")) == TypeRef("map", (TypeRef("u16"), TypeRef("bytes")))

    def parses_fixed_sizes(expect):
        expect(parse_type("bytes[0x20]")) == TypeRef("bytes", size=32)

    def rejects_invalid_expressions():
        with pytest.raises(ValidationError):
            parse_type("list<")


def describe_validation():
    def rejects_unknown_directives(expect):
        with pytest.raises(ValidationError) as exc:
            parse("@packed struct A { a: u8 }")
        expect(str(exc.value)) == "A: @packed is not allowed here"

    def raises_validation_errors_unwrapped(expect):
        with pytest.raises(ValidationError) as exc:
            parse("@packed struct A { a: u8 }")
        expect(type(exc.value)) == ValidationError
        expect(exc.value.__cause__) == None

    def rejects_field_directives_on_types():
        with pytest.raises(ValidationError):
            parse("@skip struct A { a: u8 }")

    def rejects_repeated_directives():
        with pytest.raises(ValidationError):
            parse("@by_value @by_value enum A { X }")

    def rejects_missing_arguments():
        with pytest.raises(ValidationError):
            parse("@use_tlv struct A { @tlv a: option<u8> }")

    def rejects_unexpected_arguments():
        with pytest.raises(ValidationError):
            parse("@use_tlv(1) struct A { a: u8 }")

    def rejects_unknown_repr():
        with pytest.raises(ValidationError):
            parse("@repr(u24) enum A { X }")

    def rejects_conflicting_field_roles():
        with pytest.raises(ValidationError):
            parse("@use_tlv struct A { @skip @tlv(1) a: option<u8> }")

    def rejects_duplicate_names(expect):
        with pytest.raises(ValidationError) as exc:
            parse("struct A { a: u8 } struct A { b: u8 }")
        expect(str(exc.value)) == "schema: duplicate type A"

        with pytest.raises(ValidationError):
            parse("struct A { a: u8 a: u16 }")

        with pytest.raises(ValidationError):
            parse("enum A { X X }")

    def reports_syntax_errors(expect):
        with pytest.raises(ValidationError) as exc:
            parse("struct A {\n  a u8\n}")
        expect(str(exc.value).startswith("Syntax error at line 2")) == True


def describe_load():
    def registers_parsed_types(expect):
        registry = load(read_schema())
        expect(len(registry)) == 6
        expect("Channel" in registry) == True

    def encodes_with_generic_values(expect):
        registry = load(read_schema())
        expect(registry.encode("CustomValues", Variant("Bit16"))) == bytes.fromhex("10000000")
        expect(registry.decode("Message", bytes.fromhex("0000"))) == Variant("Ping")

    def rejects_composite_map_keys():
        registry = load("enum Flag { A B } struct S { m: map<Flag, u8> }")
        with pytest.raises(InvalidDirective):
            registry.compile()
