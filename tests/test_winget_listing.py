import json
import sys
import unittest
from pathlib import Path
from unittest.mock import patch


def _add_wup_path():
    wup_root = Path(__file__).resolve().parents[1]
    if str(wup_root) not in sys.path:
        sys.path.insert(0, str(wup_root))


_add_wup_path()

from config import WupConfig  # noqa: E402
from upgrade.winget_listing import (  # noqa: E402
    list_upgrades,
    parse_header,
    parse_structured_listing,
    parse_table_listing,
)

TABLE_OUTPUT = """\
   -  \r   \\ \r
Name                              Id                           Version        Available      Source
---------------------------------------------------------------------------------------------------
Microsoft Visual Studio Code      Microsoft.VisualStudioCode   1.80.0         1.81.1         winget
Git                               Git.Git                      2.41.0         2.42.0         winget
Mozilla Firefox (x64 en-US)       Mozilla.Firefox              Unknown        118.0          winget
3 upgrades available.

The following packages have an upgrade available, but require explicit targeting for upgrade:
Name        Id                   Version  Available  Source
-----------------------------------------------------------
Docker Desk Docker.DockerDesktop 4.22     4.23       winget
"""


def _config():
    return WupConfig(log_dir=Path("logs"), winget="winget")


class StructuredListingTests(unittest.TestCase):
    def test_nested_groups_dedupe_and_inherit_source(self):
        data = {
            "Sources": [
                {
                    "SourceDetails": {"Name": "winget", "Identifier": "Microsoft.Winget.Source"},
                    "Packages": [
                        {"PackageIdentifier": "Git.Git", "PackageName": "Git",
                         "InstalledVersion": "2.41.0", "AvailableVersion": "2.42.0"},
                        {"PackageIdentifier": "7zip.7zip", "PackageName": "7-Zip"},
                    ],
                },
                {
                    "Source": "msstore",
                    "Groups": [
                        {"Packages": [{"Id": "Git.Git", "Name": "Git (duplicate)"}]},
                        {"Id": "9NBLGGH4NNS1", "Name": "App Installer"},
                    ],
                },
            ]
        }
        candidates = parse_structured_listing(data)
        self.assertEqual([c.id for c in candidates], ["Git.Git", "7zip.7zip", "9NBLGGH4NNS1"])
        self.assertEqual(candidates[0].name, "Git")
        self.assertEqual(candidates[0].source, "winget")
        self.assertEqual(candidates[2].source, "msstore")

    def test_missing_versions_render_unknown(self):
        candidates = parse_structured_listing([{"Id": "Foo.Bar", "Version": "  "}])
        self.assertEqual(candidates[0].display_installed, "unknown")
        self.assertEqual(candidates[0].display_available, "unknown")
        self.assertEqual(candidates[0].display_name, "Foo.Bar")

    def test_own_source_wins_over_group(self):
        data = {"Source": "winget", "Packages": [{"Id": "A.B", "Source": "msstore"}]}
        self.assertEqual(parse_structured_listing(data)[0].source, "msstore")

    def test_scalars_and_empty_ids_ignored(self):
        self.assertEqual(parse_structured_listing(["x", 1, None, {"Id": ""}]), [])


class TableListingTests(unittest.TestCase):
    def test_parses_names_with_spaces_and_skips_noise(self):
        candidates = parse_table_listing(TABLE_OUTPUT)
        ids = [c.id for c in candidates]
        self.assertEqual(
            ids,
            ["Microsoft.VisualStudioCode", "Git.Git", "Mozilla.Firefox", "Docker.DockerDesktop"],
        )
        self.assertEqual(candidates[0].name, "Microsoft Visual Studio Code")
        self.assertEqual(candidates[2].name, "Mozilla Firefox (x64 en-US)")
        self.assertEqual(candidates[1].installed_version, "2.41.0")
        self.assertEqual(candidates[1].available_version, "2.42.0")
        self.assertEqual(candidates[1].source, "winget")

    def test_misaligned_row_rejected(self):
        text = (
            "Name      Id        Version Available Source\n"
            "---------------------------------------------\n"
            "Short     Short.App 1.0     2.0       winget\n"
            "Much Longer Name Long.App 1.0 2.0 winget\n"
        )
        warnings = []
        candidates = parse_table_listing(text, warn=warnings.append)
        self.assertEqual([c.id for c in candidates], ["Short.App"])
        self.assertEqual(len(warnings), 1)

    def test_wide_glyph_names_sliced_by_display_width(self):
        header = "Name" + " " * 8 + "Id" + " " * 5 + "Version" + " " + "Available" + " " + "Source"
        wide_row = "微信应用" + " " * 4 + "A.B" + " " * 4 + "1.0" + " " * 5 + "2.0" + " " * 7 + "winget"
        ascii_row = "Plain App" + " " * 3 + "P.App" + " " * 2 + "3.1" + " " * 5 + "3.2" + " " * 7 + "winget"
        text = "\n".join([header, "-" * len(header), wide_row, ascii_row]) + "\n"

        warnings = []
        candidates = parse_table_listing(text, warn=warnings.append)

        self.assertEqual(warnings, [])
        self.assertEqual([c.id for c in candidates], ["A.B", "P.App"])
        self.assertEqual(candidates[0].name, "微信应用")
        self.assertEqual(candidates[0].installed_version, "1.0")
        self.assertEqual(candidates[0].available_version, "2.0")
        self.assertEqual(candidates[0].source, "winget")

    def test_wide_glyph_across_column_start_rejected(self):
        header = "Name" + " " * 8 + "Id" + " " * 5 + "Version"
        straddling = "abcdefghijk应" + "C.D" + " " * 4 + "1.0"
        warnings = []
        candidates = parse_table_listing("\n".join([header, straddling]) + "\n", warn=warnings.append)
        self.assertEqual(candidates, [])
        self.assertEqual(len(warnings), 1)

    def test_header_requires_name_id_version(self):
        self.assertIsNotNone(parse_header("Name   Id   Version   Available   Source"))
        self.assertIsNone(parse_header("Name   Version"))
        self.assertIsNone(parse_header("No installed package found matching input criteria."))

    def test_no_header_yields_nothing(self):
        self.assertEqual(parse_table_listing("No available upgrade found.\n"), [])


class ListUpgradesTests(unittest.TestCase):
    @patch("upgrade.winget_listing.winget_available", return_value=True)
    @patch("upgrade.winget_listing.run_command")
    @patch("upgrade.winget_listing.run_json_command")
    def test_structured_preferred(self, run_json, run_cmd, _available):
        run_json.return_value = (True, [{"PackageIdentifier": "Git.Git"}])
        candidates = list_upgrades(_config())
        self.assertEqual([c.id for c in candidates], ["Git.Git"])
        self.assertFalse(run_cmd.called)

    @patch("upgrade.winget_listing.winget_available", return_value=True)
    @patch("upgrade.winget_listing.run_command")
    @patch("upgrade.winget_listing.run_json_command")
    def test_falls_back_to_table(self, run_json, run_cmd, _available):
        run_json.return_value = (False, None)
        run_cmd.return_value = (True, TABLE_OUTPUT)
        candidates = list_upgrades(_config())
        self.assertEqual(len(candidates), 4)

    @patch("upgrade.winget_listing.winget_available", return_value=True)
    @patch("upgrade.winget_listing.run_command")
    @patch("upgrade.winget_listing.run_json_command")
    def test_empty_structured_listing_falls_back(self, run_json, run_cmd, _available):
        run_json.return_value = (True, json.loads('{"Sources": []}'))
        run_cmd.return_value = (True, TABLE_OUTPUT)
        self.assertEqual(len(list_upgrades(_config())), 4)

    @patch("upgrade.winget_listing.winget_available", return_value=True)
    @patch("upgrade.winget_listing.run_json_command", side_effect=RuntimeError("boom"))
    def test_never_raises(self, _run_json, _available):
        warnings = []
        self.assertEqual(list_upgrades(_config(), warn=warnings.append), [])
        self.assertTrue(any("boom" in w for w in warnings))

    @patch("upgrade.winget_listing.winget_available", return_value=False)
    @patch("upgrade.winget_listing.run_json_command")
    def test_missing_winget_warns(self, run_json, _available):
        warnings = []
        self.assertEqual(list_upgrades(_config(), warn=warnings.append), [])
        self.assertFalse(run_json.called)
        self.assertIn("winget not found", warnings[0])


if __name__ == "__main__":
    unittest.main()
