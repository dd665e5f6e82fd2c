import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch


def _add_wup_path():
    wup_root = Path(__file__).resolve().parents[1]
    if str(wup_root) not in sys.path:
        sys.path.insert(0, str(wup_root))


_add_wup_path()

import node_update  # noqa: E402
from config import WupConfig  # noqa: E402
from installer import NodeRelease  # noqa: E402
from upgrade.models import STAGE_CURRENT, UpgradeOutcome  # noqa: E402


class DummyPrinter:
    INDENT = "  "
    INDENT2 = "    "

    def __init__(self):
        self.steps = []

    def step_result(self, name, ok, error=None):
        self.steps.append((name, ok))

    def __getattr__(self, name):
        return lambda *args, **kwargs: None


class VersionManagerTests(unittest.TestCase):
    def setUp(self):
        self.config = WupConfig(log_dir=Path("unused"), nvm="nvm")

    def test_missing_nvm_stops_early(self):
        printer = DummyPrinter()
        with (
            patch("node_update.run_command", return_value=(False, "[Errno 2] No such file")),
            patch("node_update.run_streaming_command") as stream,
        ):
            results = node_update.update_version_manager_node(self.config, printer)

        self.assertEqual([(r.name, r.ok) for r in results], [("nvm available", False)])
        stream.assert_not_called()

    def test_all_steps_pass(self):
        printer = DummyPrinter()
        with (
            patch("node_update.run_command", side_effect=[(True, "1.1.12"), (True, "v20.11.1")]),
            patch("node_update.run_streaming_command", return_value=(0, "Now using node v20.11.1 (64-bit)")),
        ):
            results = node_update.update_version_manager_node(self.config, printer)

        self.assertEqual(
            [(r.name, r.ok) for r in results],
            [("nvm available", True), ("nvm install lts", True), ("nvm use lts", True), ("node --version", True)],
        )
        self.assertEqual(printer.steps, [(r.name, r.ok) for r in results])

    def test_error_output_with_zero_exit_fails(self):
        with (
            patch("node_update.run_command", return_value=(True, "1.1.12")),
            patch("node_update.run_streaming_command", return_value=(0, "exit status 1: Access is denied.")),
            patch("node_update.is_elevated", return_value=False),
        ):
            results = node_update.update_version_manager_node(self.config, DummyPrinter())

        self.assertFalse(results[-1].ok)
        self.assertEqual(results[-1].name, "nvm install lts")
        self.assertIn("exit status 1", results[-1].error)


class SystemNodeTests(unittest.TestCase):
    def setUp(self):
        self._tmp = TemporaryDirectory()
        self.config = WupConfig(log_dir=Path(self._tmp.name) / "logs")

    def tearDown(self):
        self._tmp.cleanup()

    def test_winget_no_applicable_upgrade_is_success(self):
        outcome = UpgradeOutcome(id="OpenJS.NodeJS.LTS", stage=STAGE_CURRENT, tool_exit_code=0x8A15002B)
        with (
            patch("node_update._winget_manages", return_value=True),
            patch("node_update.is_elevated", return_value=False),
            patch("node_update.run_selected", return_value=[outcome]) as run_selected,
        ):
            results = node_update.update_system_node(self.config, DummyPrinter())

        self.assertEqual([r.ok for r in results], [True])
        self.assertEqual(run_selected.call_args.args[0][0].id, "OpenJS.NodeJS.LTS")

    def test_winget_failure_reports_hint(self):
        outcome = UpgradeOutcome(id="OpenJS.NodeJS.LTS", stage=STAGE_CURRENT, tool_exit_code=1, hint="Fatal error during installation")
        with (
            patch("node_update._winget_manages", return_value=True),
            patch("node_update.is_elevated", return_value=False),
            patch("node_update.run_selected", return_value=[outcome]),
        ):
            results = node_update.update_system_node(self.config, DummyPrinter())

        self.assertFalse(results[0].ok)
        self.assertEqual(results[0].error, "Fatal error during installation")

    def test_msi_path(self):
        release = NodeRelease(version="v20.11.1", lts="Iron", files=["win-x64-msi"])
        msi = Path(self._tmp.name) / "node-v20.11.1-x64.msi"
        with (
            patch("node_update._winget_manages", return_value=False),
            patch("node_update.node_arch", return_value="x64"),
            patch("node_update.fetch_latest_lts", return_value=release),
            patch("node_update._system_node_exe", return_value=Path(self._tmp.name) / "missing.exe"),
            patch("node_update.download_installer", return_value=msi) as download,
            patch("node_update.run_msi_installer", return_value=3010),
        ):
            results = node_update.update_system_node(self.config, DummyPrinter())

        self.assertEqual(
            [(r.name, r.ok) for r in results],
            [("resolve latest LTS", True), ("download installer", True), ("install MSI", True)],
        )
        self.assertEqual(download.call_args.args[0], "https://nodejs.org/dist/v20.11.1/node-v20.11.1-x64.msi")

    def test_msi_skipped_when_current(self):
        release = NodeRelease(version="v20.11.1", lts="Iron", files=["win-x64-msi"])
        node_exe = Path(self._tmp.name) / "node.exe"
        node_exe.write_bytes(b"")
        with (
            patch("node_update._winget_manages", return_value=False),
            patch("node_update.fetch_latest_lts", return_value=release),
            patch("node_update._system_node_exe", return_value=node_exe),
            patch("node_update.run_command", return_value=(True, "v20.11.1\n")),
            patch("node_update.download_installer") as download,
        ):
            results = node_update.update_system_node(self.config, DummyPrinter())

        download.assert_not_called()
        self.assertTrue(all(r.ok for r in results))

    def test_malformed_index_url_recorded_as_failed_step(self):
        config = WupConfig(log_dir=Path(self._tmp.name) / "logs", node_index_url="nodejs.org/dist/index.json")
        with patch("node_update._winget_manages", return_value=False):
            results = node_update.update_system_node(config, DummyPrinter())

        self.assertEqual([(r.name, r.ok) for r in results], [("resolve latest LTS", False)])

    def test_bad_download_url_recorded_as_failed_step(self):
        release = NodeRelease(version="v20.11.1", lts="Iron", files=["win-x64-msi"])
        with (
            patch("node_update._winget_manages", return_value=False),
            patch("node_update.node_arch", return_value="x64"),
            patch("node_update.fetch_latest_lts", return_value=release),
            patch("node_update._system_node_exe", return_value=Path(self._tmp.name) / "missing.exe"),
            patch("node_update.download_installer", side_effect=ValueError("unknown url type")),
            patch("node_update.run_msi_installer") as run_msi,
        ):
            results = node_update.update_system_node(self.config, DummyPrinter())

        self.assertEqual(
            [(r.name, r.ok) for r in results],
            [("resolve latest LTS", True), ("download installer", False)],
        )
        self.assertIn("unknown url type", results[-1].error)
        run_msi.assert_not_called()

    def test_release_index_unavailable(self):
        with (
            patch("node_update._winget_manages", return_value=False),
            patch("node_update.fetch_latest_lts", return_value=None),
        ):
            results = node_update.update_system_node(self.config, DummyPrinter())

        self.assertEqual([(r.name, r.ok) for r in results], [("resolve latest LTS", False)])


if __name__ == "__main__":
    unittest.main()
