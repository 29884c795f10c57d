import struct

import pytest

from gpoReporter.core.errors import DirectoryError
from gpoReporter.core.sysvol import (
    find_policies_folder,
    parse_registry_pol,
    read_policy_files_local,
    split_unc_path,
)

GUID = "{31B2F340-016D-11D2-945F-00C04FB984F9}"


def utf16(text):
    return text.encode("utf-16-le")


def pol_entry(key, name, value_type, data):
    return (
        utf16("[") + utf16(key) + b"\x00\x00" + utf16(";")
        + utf16(name) + b"\x00\x00" + utf16(";")
        + struct.pack("<I", value_type) + utf16(";")
        + struct.pack("<I", len(data)) + utf16(";")
        + data + utf16("]")
    )


def registry_pol(*entries):
    return b"PReg" + struct.pack("<I", 1) + b"".join(entries)


def test_parse_registry_pol_values():
    data = registry_pol(
        pol_entry(r"Software\Policies\Microsoft\Windows\Control Panel\Desktop", "ScreenSaveTimeOut", 1, utf16("900\x00")),
        pol_entry(r"Software\Policies\Microsoft\Windows NT\Terminal Services", "fDenyTSConnections", 4, struct.pack("<I", 1)),
        pol_entry(r"Software\Policies\Example", "Servers", 7, utf16("a\x00b\x00\x00")),
    )

    assert parse_registry_pol(data) == [
        {"key": r"Software\Policies\Microsoft\Windows\Control Panel\Desktop", "name": "ScreenSaveTimeOut", "type": "REG_SZ", "value": "900"},
        {"key": r"Software\Policies\Microsoft\Windows NT\Terminal Services", "name": "fDenyTSConnections", "type": "REG_DWORD", "value": "1"},
        {"key": r"Software\Policies\Example", "name": "Servers", "type": "REG_MULTI_SZ", "value": "a; b"},
    ]


def test_parse_empty_registry_pol():
    assert parse_registry_pol(registry_pol()) == []


def test_parse_registry_pol_rejects_bad_signature():
    with pytest.raises(ValueError):
        parse_registry_pol(b"NOPE\x01\x00\x00\x00")


def test_parse_registry_pol_rejects_truncated_data():
    data = registry_pol(pol_entry("Key", "Value", 4, struct.pack("<I", 1)))
    with pytest.raises(ValueError):
        parse_registry_pol(data[:-6])


def test_split_unc_path():
    share, path = split_unc_path(rf"\\corp.local\SysVol\corp.local\Policies\{GUID}")
    assert share == "SysVol"
    assert path == rf"\corp.local\Policies\{GUID}"


def test_split_unc_path_rejects_empty_path():
    with pytest.raises(DirectoryError):
        split_unc_path("")


def test_local_policy_files_are_read_case_insensitively(tmp_path):
    gpo_dir = tmp_path / "sysvol" / "corp.local" / "Policies" / GUID.lower()
    (gpo_dir / "Machine" / "Microsoft" / "Windows NT" / "SecEdit").mkdir(parents=True)
    (gpo_dir / "GPT.INI").write_text("[General]\nVersion=3\n")
    (gpo_dir / "Machine" / "Microsoft" / "Windows NT" / "SecEdit" / "GptTmpl.inf").write_text("[Unicode]\n")
    (gpo_dir / "Machine" / "comment.bin").write_bytes(b"\x00")

    policies = find_policies_folder(str(tmp_path / "sysvol"))
    files = read_policy_files_local(policies, GUID)

    assert [path for path, _ in files] == [
        "GPT.INI",
        "Machine/Microsoft/Windows NT/SecEdit/GptTmpl.inf",
    ]


def test_missing_policies_folder(tmp_path):
    with pytest.raises(DirectoryError):
        find_policies_folder(str(tmp_path))


def test_missing_gpo_folder(tmp_path):
    (tmp_path / "Policies").mkdir()
    with pytest.raises(DirectoryError):
        read_policy_files_local(tmp_path / "Policies", GUID)
