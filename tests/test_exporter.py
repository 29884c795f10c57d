import csv

import pytest

from gpoReporter.core.errors import OutputError
from gpoReporter.core.exporter import save_settings_table, save_status_table, write_table
from gpoReporter.core.settings import MatchRecord, StatusRecord


def test_status_table_quotes_every_field(tmp_path):
    path = save_status_table(str(tmp_path), [StatusRecord("Default Domain Policy", "AllSettingsEnabled")])

    with open(path, encoding="utf-8") as f:
        assert f.read().splitlines() == [
            '"GPO Name","GPO Status"',
            '"Default Domain Policy","AllSettingsEnabled"',
        ]


def test_settings_table_appends_without_second_header(tmp_path):
    save_settings_table(str(tmp_path), [MatchRecord("Alpha", "password")])
    path = save_settings_table(str(tmp_path), [MatchRecord("Beta", "lock")])

    with open(path, newline="", encoding="utf-8") as f:
        assert list(csv.reader(f)) == [
            ["GroupPolicyName", "Setting"],
            ["Alpha", "password"],
            ["Beta", "lock"],
        ]


def test_header_written_into_empty_existing_file(tmp_path):
    path = tmp_path / "table.csv"
    path.write_text("")
    write_table(str(path), ("a", "b"), [("1", "2")])

    assert path.read_text(encoding="utf-8").splitlines() == ['"a","b"', '"1","2"']


def test_truncate_drops_previous_rows(tmp_path):
    save_status_table(str(tmp_path), [StatusRecord("Old", "AllSettingsEnabled")])
    path = save_status_table(str(tmp_path), [StatusRecord("New", "AllSettingsDisabled")], truncate=True)

    with open(path, newline="", encoding="utf-8") as f:
        assert list(csv.reader(f)) == [["GPO Name", "GPO Status"], ["New", "AllSettingsDisabled"]]


def test_unwritable_table_raises_output_error(tmp_path):
    with pytest.raises(OutputError):
        write_table(str(tmp_path / "missing" / "table.csv"), ("a",), [])
