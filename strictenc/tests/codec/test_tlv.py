"""Tests for the TLV extension region"""

from dataclasses import dataclass

from pytest import fixture, raises

from strictenc.codec import (
    DuplicateTlvEntry,
    InvalidFieldType,
    InvalidValue,
    LengthMismatch,
    MultipleTlvCaptureFields,
    Registry,
    TlvNotEnabled,
    TlvTagConflict,
    TrailingBytes,
    UnknownMandatoryTlv,
    strict_field,
    strict_struct,
)
from strictenc.codec.tlv import is_mandatory


@fixture
def registry():
    return Registry()


@fixture
def Channel(registry):
    @strict_struct(registry=registry, use_tlv=True)
    @dataclass
    class Channel:
        id: int = strict_field("u16")
        alias: str | None = strict_field("option<string>", tlv=2, default=None)
        fee: int | None = strict_field("option<u32>", tlv=4, default=None)
        unknown: dict[int, bytes] = strict_field(
            "map<u16, bytes>", unknown_tlvs=True, default_factory=dict
        )

    return Channel


def describe_encoding():
    def omits_absent_fields(expect, Channel):
        expect(Channel(id=1).strict_serialize()) == b"\x01\x00"

    def writes_present_fields_in_tag_order(expect, Channel):
        data = Channel(id=1, alias="ab", fee=5).strict_serialize()
        expect(data.hex()) == "0100" + "0200" "0400" "0200" "6162" + "0400" "0400" "05000000"

    def appends_captured_entries_last(expect, Channel):
        data = Channel(id=1, fee=5, unknown={7: b"\xaa", 3: b""}).strict_serialize()
        expect(data.hex()) == (
            "0100" + "0400" "0400" "05000000" + "0300" "0000" + "0700" "0100" "aa"
        )

    def rejects_even_captured_ids(Channel):
        with raises(InvalidValue):
            Channel(id=1, unknown={6: b"\x00"}).strict_serialize()

    def rejects_captured_ids_of_known_fields(Channel, registry):
        @strict_struct(registry=registry, use_tlv=True)
        @dataclass
        class OddKnown:
            extra: int | None = strict_field("option<u8>", tlv=3, default=None)
            unknown: dict[int, bytes] = strict_field(
                "map<u16, bytes>", unknown_tlvs=True, default_factory=dict
            )

        with raises(InvalidValue):
            OddKnown(unknown={3: b"\x01"}).strict_serialize()

    def rejects_non_bytes_captured_payloads(Channel):
        with raises(InvalidValue):
            Channel(id=1, unknown={3: "text"}).strict_serialize()

    def rejects_non_int_captured_ids(Channel):
        with raises(InvalidValue):
            Channel(id=1, unknown={3: b"", "x": b""}).strict_serialize()

    def reports_the_failing_tlv_field(expect, Channel):
        with raises(InvalidValue) as exc:
            Channel(id=1, fee=2**40).strict_serialize()
        expect(exc.value.context) == ["Channel", "fee"]


def describe_decoding():
    def decodes_known_fields(expect, Channel):
        data = bytes.fromhex("0100" "0400" "0400" "05000000")
        expect(Channel.strict_deserialize(data)) == Channel(id=1, fee=5)

    def rejects_unknown_even_ids(expect, Channel):
        data = bytes.fromhex("0100" "0600" "0100" "ff")
        with raises(UnknownMandatoryTlv) as exc:
            Channel.strict_deserialize(data)
        expect(exc.value.tag_id) == 6
        expect(exc.value.offset) == 2

    def captures_unknown_odd_ids(expect, Channel):
        data = bytes.fromhex("0100" "0700" "0100" "ff")
        channel = Channel.strict_deserialize(data)
        expect(channel.unknown) == {7: b"\xff"}
        expect(channel.alias) == None

    def drops_unknown_odd_ids_without_capture(expect, registry):
        @strict_struct(registry=registry, use_tlv=True)
        @dataclass
        class Plain:
            id: int = strict_field("u8")

        expect(Plain.strict_deserialize(bytes.fromhex("01" "0500" "0100" "ff"))) == Plain(id=1)

    def rejects_repeated_ids(expect, Channel):
        data = bytes.fromhex("0100" "0700" "0000" "0700" "0000")
        with raises(DuplicateTlvEntry) as exc:
            Channel.strict_deserialize(data)
        expect(exc.value.tag_id) == 7

    def rejects_partially_consumed_payloads(Channel):
        data = bytes.fromhex("0100" "0400" "0500" "0500000000")
        with raises(LengthMismatch):
            Channel.strict_deserialize(data)

    def rejects_entries_longer_than_the_input(Channel):
        with raises(LengthMismatch):
            Channel.strict_deserialize(bytes.fromhex("0100" "0700" "0500" "ff"))

    def reports_the_failing_tlv_field(expect, Channel):
        data = bytes.fromhex("0100" "0400" "0500" "0500000000")
        with raises(LengthMismatch) as exc:
            Channel.strict_deserialize(data)
        expect(exc.value.context) == ["Channel", "fee"]

    def rejects_bytes_shorter_than_an_entry_header(expect, Channel):
        data = Channel(id=1, fee=5).strict_serialize() + b"\x00"
        with raises(TrailingBytes) as exc:
            Channel.strict_deserialize(data)
        expect(exc.value.count) == 1
        expect(exc.value.offset) == 10

    def preserves_unknown_entries_on_reencode(expect, Channel):
        data = bytes.fromhex("0100" "0400" "0400" "05000000" "0900" "0200" "abcd")
        expect(Channel.strict_deserialize(data).strict_serialize()) == data


def describe_nesting():
    def frames_nested_tlv_structs(expect, Channel, registry):
        @strict_struct(registry=registry)
        @dataclass
        class Wrapper:
            channel: object = strict_field(Channel)
            flag: bool = strict_field("bool")

        data = Wrapper(channel=Channel(id=1, fee=5), flag=True).strict_serialize()
        expect(data.hex()) == "0a00" + "0100" "0400" "0400" "05000000" + "01"
        expect(Wrapper.strict_deserialize(data).channel) == Channel(id=1, fee=5)

    def top_level_has_no_frame(expect, Channel):
        expect(Channel(id=3).strict_serialize()) == b"\x03\x00"

    def rejects_trailing_bytes_after_frame(Channel, registry):
        @strict_struct(registry=registry)
        @dataclass
        class Wrapper:
            channel: object = strict_field(Channel)

        with raises(TrailingBytes):
            Wrapper.strict_deserialize(bytes.fromhex("0200" "0100" "00"))


def describe_schema_errors():
    def requires_use_tlv(expect, registry):
        @strict_struct(registry=registry)
        @dataclass
        class NoTlv:
            alias: str | None = strict_field("option<string>", tlv=1, default=None)

        with raises(TlvNotEnabled) as exc:
            registry.compile()
        expect(exc.value.field) == "alias"

    def requires_optional_fields(registry):
        @strict_struct(registry=registry, use_tlv=True)
        @dataclass
        class NotOptional:
            alias: str = strict_field("string", tlv=1, default="")

        with raises(InvalidFieldType):
            registry.compile()

    def rejects_shared_ids(registry):
        @strict_struct(registry=registry, use_tlv=True)
        @dataclass
        class Shared:
            a: int | None = strict_field("option<u8>", tlv=1, default=None)
            b: int | None = strict_field("option<u8>", tlv=1, default=None)

        with raises(TlvTagConflict):
            registry.compile()

    def allows_one_capture_field(expect, registry):
        @strict_struct(registry=registry, use_tlv=True)
        @dataclass
        class TwoCaptures:
            a: dict = strict_field("map<u16, bytes>", unknown_tlvs=True, default_factory=dict)
            b: dict = strict_field("map<u16, bytes>", unknown_tlvs=True, default_factory=dict)

        with raises(MultipleTlvCaptureFields) as exc:
            registry.compile()
        expect(exc.value.fields) == ("a", "b")

    def requires_capture_type(registry):
        @strict_struct(registry=registry, use_tlv=True)
        @dataclass
        class WrongCapture:
            a: dict = strict_field("map<u8, bytes>", unknown_tlvs=True, default_factory=dict)

        with raises(InvalidFieldType):
            registry.compile()


def describe_is_mandatory():
    def even_ids_are_mandatory(expect):
        expect(is_mandatory(0)) == True
        expect(is_mandatory(2)) == True
        expect(is_mandatory(1)) == False
        expect(is_mandatory(65535)) == False
