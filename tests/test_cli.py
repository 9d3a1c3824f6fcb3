"""
End-to-end CLI tests: typer commands against a fake daemon socket.
"""

import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from typer.testing import CliRunner

from fake_daemon import FakeDaemon

from tabcli.config import Config
from tabcli.ui.cli import app


def daemon_handler(responses):
    """Answer pings with pong and commands with the next canned response."""

    def handler(line):
        message = json.loads(line)
        if message["type"] == "ping":
            return b'{"type":"pong","payload":null}\n'
        payload = dict(responses.pop(0), id=message["payload"]["id"])
        return json.dumps({"type": "response", "payload": payload}).encode("utf-8") + b"\n"

    return handler


@unittest.skipIf(os.name == "nt", "Unix domain sockets only")
class TestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.temp_dir = tempfile.mkdtemp(prefix="tab-")
        self.socket_path = os.path.join(self.temp_dir, "daemon.sock")
        self.config = Config(
            socket_path=self.socket_path,
            connection_timeout_ms=500,
            command_timeout_ms=1000,
            startup_timeout_ms=300,
            poll_interval_ms=50,
            daemon_path=os.path.join(self.temp_dir, "missing-daemon"),
        )
        patcher = patch("tabcli.ui.cli.get_config", return_value=self.config)
        patcher.start()
        self.addCleanup(patcher.stop)
        env_patcher = patch.dict(os.environ, {"TAB_SESSION": "", "TAB_PROFILE": ""})
        env_patcher.start()
        self.addCleanup(env_patcher.stop)
        which_patcher = patch("shutil.which", return_value=None)
        which_patcher.start()
        self.addCleanup(which_patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def invoke(self, *args):
        return self.runner.invoke(app, list(args))

    def test_ping_without_daemon_exits_2(self):
        result = self.invoke("ping")
        self.assertEqual(result.exit_code, 2)

    def test_ping_with_daemon(self):
        with FakeDaemon(self.socket_path):
            result = self.invoke("ping")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Daemon is running", result.stdout)

    def test_command_without_daemon_or_executable_exits_2(self):
        result = self.invoke("snapshot")
        self.assertEqual(result.exit_code, 2)

    def test_invalid_session_exits_65(self):
        result = self.invoke("--session", "bad name", "snapshot")
        self.assertEqual(result.exit_code, 65)

    def test_invalid_url_exits_64(self):
        result = self.invoke("navigate", "chrome://settings")
        self.assertEqual(result.exit_code, 64)

    def test_navigate_human_output(self):
        handler = daemon_handler([{"success": True, "data": {"executed": True}}])
        with FakeDaemon(self.socket_path, handler) as daemon:
            result = self.invoke("--session", "work", "navigate", "example.com")

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.stdout, "Success\n")

        command = json.loads(daemon.received[-1])["payload"]
        self.assertEqual(command["type"], "navigate")
        self.assertEqual(command["sessionId"], "work")
        self.assertEqual(command["params"], {"url": "https://example.com"})

    def test_json_output(self):
        handler = daemon_handler([{"success": True, "data": {"tabId": 7}}])
        with FakeDaemon(self.socket_path, handler):
            result = self.invoke("--output", "json", "tab", "new")

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(result.stdout), {"tabId": 7})

    def test_tab_list_output(self):
        data = {
            "tabs": [
                {"id": 1, "url": "https://a.com", "title": "A", "active": False},
                {"id": 2, "url": "https://b.com", "title": "B", "active": True},
            ],
            "activeTabId": 2,
        }
        with FakeDaemon(self.socket_path, daemon_handler([{"success": True, "data": data}])):
            result = self.invoke("tab", "list")

        self.assertEqual(result.exit_code, 0)
        self.assertIn("* [2] B https://b.com", result.stdout)

    def test_failed_command_exits_1(self):
        handler = daemon_handler([{"success": False, "error": "No element with ref e9"}])
        with FakeDaemon(self.socket_path, handler):
            result = self.invoke("--output", "quiet", "click", "e9")

        self.assertEqual(result.exit_code, 1)

    def test_profile_flag_is_sent(self):
        handler = daemon_handler([{"success": True}])
        with FakeDaemon(self.socket_path, handler) as daemon:
            result = self.invoke("--profile", "/profiles/p1", "back")

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(daemon.received[-1])["payload"]["profile"], "/profiles/p1")


if __name__ == "__main__":
    unittest.main()
