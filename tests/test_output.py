"""
Tests for ui/output.py - rendering responses in the three output formats.
"""

import io
import json
import unittest

from rich.console import Console

from tabcli.commands import SnapshotData, TabInfo, TabListData
from tabcli.daemon.protocol import CommandResponse
from tabcli.ui.output import (
    OutputFormat,
    OutputFormatter,
    format_human_data,
    format_snapshot,
    format_tab_list,
)


def make_formatter(output_format):
    out, err = io.StringIO(), io.StringIO()
    formatter = OutputFormatter(
        output_format,
        console=Console(file=out, highlight=False, soft_wrap=True, color_system=None),
        error_console=Console(file=err, highlight=False, soft_wrap=True, color_system=None),
    )
    return formatter, out, err


SNAPSHOT = {"snapshot": "- heading \"Hi\" [ref=e1]", "title": "Example", "url": "https://example.com/"}


class TestHumanFormatting(unittest.TestCase):
    def test_snapshot(self):
        text = format_snapshot(SnapshotData(**SNAPSHOT))
        self.assertEqual(text, "Title: Example\nURL: https://example.com\n\n- heading \"Hi\" [ref=e1]")

    def test_tab_list_marks_active(self):
        data = TabListData(
            tabs=[TabInfo(1, "https://a.com", "A"), TabInfo(2, "https://b.com", "B")],
            active_tab_id=2,
        )
        self.assertEqual(
            format_tab_list(data),
            "Open tabs:\n  [1] A https://a.com\n* [2] B https://b.com",
        )

    def test_executed_and_empty_are_success(self):
        self.assertEqual(format_human_data(None), "Success")
        self.assertEqual(format_human_data({"executed": True}), "Success")

    def test_other_data_as_key_value(self):
        self.assertEqual(format_human_data({"result": 3, "title": "Page"}), "result: 3\ntitle: Page")

    def test_snapshot_shape_detected(self):
        self.assertTrue(format_human_data(SNAPSHOT).startswith("Title: Example"))


class TestOutputFormatter(unittest.TestCase):
    def test_json_success(self):
        formatter, _, _ = make_formatter(OutputFormat.JSON)
        response = CommandResponse(id="cmd-1", success=True, data={"tabId": 4})
        self.assertEqual(json.loads(formatter.format_success(response)), {"tabId": 4})

    def test_json_success_without_data(self):
        formatter, _, _ = make_formatter(OutputFormat.JSON)
        self.assertEqual(formatter.format_success(CommandResponse(id="cmd-1", success=True)), "{}")

    def test_json_error_carries_success_false(self):
        formatter, _, _ = make_formatter(OutputFormat.JSON)
        response = CommandResponse(id="cmd-1", success=False, error="No tab")

        output = formatter.format_error(response)
        self.assertIn('"success":false', output)
        self.assertEqual(json.loads(output)["error"], "No tab")

    def test_quiet(self):
        formatter, out, _ = make_formatter(OutputFormat.QUIET)
        formatter.print_response(CommandResponse(id="cmd-1", success=True, data={"executed": True}))

        self.assertEqual(out.getvalue(), "")
        self.assertEqual(formatter.format_error(CommandResponse(id="cmd-1", success=False, error="boom")), "boom")

    def test_human_error(self):
        formatter, _, _ = make_formatter(OutputFormat.HUMAN)
        response = CommandResponse(id="cmd-1", success=False, error="boom")
        self.assertEqual(formatter.format_error(response), "Error: boom")

    def test_print_response_skips_failures(self):
        formatter, out, _ = make_formatter(OutputFormat.HUMAN)
        formatter.print_response(CommandResponse(id="cmd-1", success=False, error="boom"))
        self.assertEqual(out.getvalue(), "")

    def test_print_response_human(self):
        formatter, out, _ = make_formatter(OutputFormat.HUMAN)
        formatter.print_response(CommandResponse(id="cmd-1", success=True, data=SNAPSHOT))
        self.assertIn("URL: https://example.com\n", out.getvalue())

    def test_emoji_codes_are_printed_verbatim(self):
        for output_format in (OutputFormat.JSON, OutputFormat.HUMAN):
            with self.subTest(output_format=output_format):
                formatter, out, _ = make_formatter(output_format)
                formatter.print_response(CommandResponse(id="cmd-1", success=True, data={"result": "a :thumbs_up: b"}))
                self.assertIn("a :thumbs_up: b", out.getvalue())

    def test_default_consoles_disable_emoji(self):
        formatter = OutputFormatter(OutputFormat.JSON)
        self.assertFalse(formatter.console._emoji)
        self.assertFalse(formatter.error_console._emoji)

    def test_print_error_escapes_markup(self):
        formatter, _, err = make_formatter(OutputFormat.HUMAN)
        formatter.print_error("invalid session: '[bold]x'")
        self.assertEqual(err.getvalue(), "Error: invalid session: '[bold]x'\n")


if __name__ == "__main__":
    unittest.main()
