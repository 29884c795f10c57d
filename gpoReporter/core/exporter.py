from gpoReporter.core.errors import OutputError
import csv
import os

SETTINGS_FILENAME = "GPO_Settings.csv"
STATUS_FILENAME = "GPO_Status.csv"

SETTINGS_HEADER = ("GroupPolicyName", "Setting")
STATUS_HEADER = ("GPO Name", "GPO Status")


def write_table(path, header, rows, truncate=False):
    """
    Write rows to a CSV table.

    Append mode unless truncate is set: existing rows are kept and the header
    is only written when the file is new or empty.
    """
    write_header = truncate or not os.path.exists(path) or os.path.getsize(path) == 0
    try:
        with open(path, "w" if truncate else "a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_ALL)
            if write_header:
                writer.writerow(header)
            writer.writerows(rows)
    except OSError as e:
        raise OutputError(f"Failed to write {path}: {e}") from e
    return path


def save_settings_table(report_folder, match_records, truncate=False):
    path = os.path.join(report_folder, SETTINGS_FILENAME)
    return write_table(path, SETTINGS_HEADER, match_records, truncate)


def save_status_table(report_folder, status_records, truncate=False):
    path = os.path.join(report_folder, STATUS_FILENAME)
    return write_table(path, STATUS_HEADER, status_records, truncate)
