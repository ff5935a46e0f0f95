"""Tests for CLI interface."""

import json
import os
import tempfile

from click.testing import CliRunner

from strictenc.schema.cli import cli

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
SCHEMA = f"{FILE_DIR}/channel.strict"


def describe_gen_command():
    def generates_python_code(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile(suffix=".py", delete=False) as f:
            output_file = f.name

        try:
            result = runner.invoke(cli, ["gen", "-i", SCHEMA, "-o", output_file])
            expect(result.exit_code) == 0
            with open(output_file) as f:
                content = f.read()
            expect("class Channel" in content) == True
            expect("@dataclass(kw_only=True)" in content) == True
            expect("from strictenc.codec import" in content) == True
        finally:
            os.unlink(output_file)

    def uses_custom_runtime_import(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile(suffix=".py", delete=False) as f:
            output_file = f.name

        try:
            result = runner.invoke(
                cli,
                ["gen", "-i", SCHEMA, "-o", output_file, "--runtime-import", "vendor.strictenc"],
            )
            expect(result.exit_code) == 0
            with open(output_file) as f:
                content = f.read()
            expect("from vendor.strictenc import" in content) == True
        finally:
            os.unlink(output_file)

    def reports_schema_errors(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile("w", suffix=".strict", delete=False) as f:
            f.write("struct A { @tlv(1) a: option<u8> }")
            schema_file = f.name

        try:
            result = runner.invoke(cli, ["gen", "-i", schema_file, "-o", os.devnull])
            expect(result.exit_code) == 1
            expect("TLV field used without use_tlv" in result.stdout) == True
        finally:
            os.unlink(schema_file)

    def reports_directive_errors(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile("w", suffix=".strict", delete=False) as f:
            f.write("@packed struct A { a: u8 }")
            schema_file = f.name

        try:
            result = runner.invoke(cli, ["gen", "-i", schema_file, "-o", os.devnull])
            expect(result.exit_code) == 1
            expect("A: @packed is not allowed here" in result.stdout) == True
        finally:
            os.unlink(schema_file)


def describe_info_command():
    def displays_plans(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", SCHEMA])
        expect(result.exit_code) == 0
        expect("Channel" in result.stdout) == True
        expect("Bit16" in result.stdout) == True

    def outputs_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", SCHEMA, "--json"])
        expect(result.exit_code) == 0

        plans = {p["name"]: p for p in json.loads(result.stdout)}
        expect(plans["Channel"]["use_tlv"]) == True
        expect(plans["Channel"]["size"]["kind"]) == "unbounded"
        expect([f["role"] for f in plans["Channel"]["fields"]][-3:]) == [
            "tlv",
            "tlv",
            "unknown_tlvs",
        ]
        expect(plans["CustomValues"]["tag_strategy"]) == "by_value"
        expect(plans["CustomValues"]["tag_width"]) == 4
        expect([v["tag"] for v in plans["CustomValues"]["variants"]]) == [1, 16]
        expect(plans["Skipping"]["size"]) == {"min_size": 2, "max_size": 65537, "kind": "bounded"}


def describe_decode_command():
    def prints_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-i", SCHEMA, "-t", "Message", "08000100ff0200"])
        expect(result.exit_code) == 0
        expect(json.loads(result.stdout)) == {
            "variant": "Data",
            "fields": {"payload": "ff", "seq": 2},
        }

    def reports_decode_errors(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-i", SCHEMA, "-t", "Flag", "0000"])
        expect(result.exit_code) == 1
        expect("trailing byte" in result.stdout) == True

    def reports_bad_hex(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-i", SCHEMA, "-t", "Flag", "xyz"])
        expect(result.exit_code) == 1


def describe_encode_command():
    def prints_hex(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["encode", "-i", SCHEMA, "-t", "Skipping", '{"data": "abc"}'])
        expect(result.exit_code) == 0
        expect(result.stdout.strip()) == "0300616263"

    def reports_unknown_types(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["encode", "-i", SCHEMA, "-t", "Missing", "{}"])
        expect(result.exit_code) == 1
        expect("Unknown type Missing" in result.stdout) == True


def describe_logging():
    def verbose_logs_schema_loading(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["--verbose", "info", "-i", SCHEMA])
        expect(result.exit_code) == 0
        expect("schema loaded" in result.output) == True

    def quiet_by_default(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", SCHEMA])
        expect(result.exit_code) == 0
        expect("schema loaded" in result.output) == False
