"""Tests for the Python code generator"""

import os
from enum import Enum

from pytest import raises

from strictenc.codec import UnknownMandatoryTlv
from strictenc.schema import parse
from strictenc.schema.python import render

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def gen_code(file_name):
    gbl = globals().copy()

    with open(file_name) as f:
        text = f.read()

    generated_code = render(parse(text), runtime_import="strictenc.codec")
    exec(generated_code, gbl)
    return gbl


def describe_render():
    def declares_a_registry(expect):
        code = render(parse("struct A { a: u8 }"), registry_name="types")
        expect("types = Registry()" in code) == True
        expect("@strict_struct(registry=types)" in code) == True

    def renders_field_directives(expect):
        code = render(parse("@use_tlv struct A { @tlv(3) a: option<string> @skip b: u8 }"))
        expect('a: str | None = strict_field("option<string>", tlv=3, default=None)' in code) == True
        expect('b: int = strict_field("u8", skip=True, default=0)' in code) == True
        expect("@strict_struct(registry=registry, use_tlv=True)" in code) == True

    def renders_fieldless_unions_as_enums(expect):
        code = render(parse("@by_value enum Dir { Up = 3 Down }"))
        expect("class Dir(Enum):" in code) == True
        expect("    Up = 3" in code) == True
        expect("    Down = 4" in code) == True

    def renders_explicit_values(expect):
        code = render(parse("@repr(u32) enum Dir { Up @value(0x10) Down }"))
        expect("@strict_union(registry=registry, repr=4, values={'Down': 16})" in code) == True


def describe_generated_code():
    def encodes_structs(expect):
        gen = gen_code(FILE_DIR + "/channel.strict")
        Channel = gen["Channel"]
        Flag = gen["Flag"]

        channel = Channel(id=7, capacity=1, flags=[Flag.Private], alias="ab")
        data = channel.strict_serialize()
        expect(data.hex()) == (
            "07000000" "0100000000000000" "0100" "01" + "0100" "0400" "0200" "6162"
        )
        expect(Channel.strict_deserialize(data)) == channel

    def skips_fields(expect):
        gen = gen_code(FILE_DIR + "/channel.strict")
        Skipping = gen["Skipping"]

        expect(Skipping(data="abc", ephemeral=True).strict_serialize()) == bytes.fromhex(
            "0300616263"
        )
        expect(Skipping.strict_deserialize(bytes.fromhex("0300616263"))) == Skipping(data="abc")

    def enforces_mandatory_tlvs(expect):
        gen = gen_code(FILE_DIR + "/channel.strict")
        Channel = gen["Channel"]

        body = "07000000" "0100000000000000" "0000"
        with raises(UnknownMandatoryTlv):
            Channel.strict_deserialize(bytes.fromhex(body + "0600" "0100" "aa"))

        channel = Channel.strict_deserialize(bytes.fromhex(body + "0700" "0100" "aa"))
        expect(channel.unknown) == {7: b"\xaa"}

    def encodes_custom_values(expect):
        gen = gen_code(FILE_DIR + "/channel.strict")
        CustomValues = gen["CustomValues"]

        expect(issubclass(CustomValues, Enum)) == True
        expect(CustomValues.Bit16.strict_serialize()) == bytes.fromhex("10000000")
        expect(CustomValues.Bit8.strict_serialize()) == bytes.fromhex("01000000")

    def encodes_variant_classes(expect):
        gen = gen_code(FILE_DIR + "/channel.strict")
        Message = gen["Message"]

        expect(Message.Ping().strict_serialize()) == b"\x00\x00"
        data = Message.Data(payload=b"\x01", seq=2).strict_serialize()
        expect(data) == b"\x08\x00" + b"\x01\x00\x01" + b"\x02\x00"
        expect(Message.strict_deserialize(data)) == Message.Data(payload=b"\x01", seq=2)
        expect(Message.Close(reason="").strict_serialize()) == b"\x02\x00\x00\x00"

    def nests_framed_structs(expect):
        gen = gen_code(FILE_DIR + "/channel.strict")
        Channel = gen["Channel"]
        Update = gen["Update"]

        update = Update(
            node=b"\x00\x01\x02\x03",
            channel=Channel(id=1, capacity=2, flags=[]),
            scores={2: -1, 1: 5},
        )
        data = update.strict_serialize()
        expect(data.hex()) == (
            "00010203"
            + "0e00" "01000000" "0200000000000000" "0000"
            + "0200" "01" "0500" "02" "ffff"
        )
        expect(Update.strict_deserialize(data)) == update
