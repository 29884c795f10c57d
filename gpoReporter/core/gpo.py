from gpoReporter.core.errors import EnumerationError
from gpoReporter.core.utils import stream_items, find_dump_file

GPO_STATUS = {
    0: "AllSettingsEnabled",
    1: "UserSettingsDisabled",
    2: "ComputerSettingsDisabled",
    3: "AllSettingsDisabled",
}

GPO_ATTRIBUTES = ["cn", "displayName", "flags", "versionNumber", "gPCFileSysPath", "whenCreated", "whenChanged"]


class GPO:
    def __init__(self, guid):
        self.guid = guid
        self.name = None
        self.flags = 0
        self.version = 0
        self.file_sys_path = ""
        self.created = ""
        self.modified = ""

    @property
    def status(self):
        return GPO_STATUS.get(self.flags, f"Unknown ({self.flags})")

    @property
    def computer_enabled(self):
        return not bool(self.flags & 2)

    @property
    def user_enabled(self):
        return not bool(self.flags & 1)

    @property
    def computer_version(self):
        # versionNumber: high word is the user version, low word the computer one
        return self.version & 0xFFFF

    @property
    def user_version(self):
        return (self.version >> 16) & 0xFFFF

    @classmethod
    def from_entry(cls, entry):
        gpo = cls(str(single(entry.get("cn")) or "").upper())
        gpo.name = str(single(entry.get("displayName")) or "")
        gpo.flags = as_int(single(entry.get("flags")))
        gpo.version = as_int(single(entry.get("versionNumber")))
        gpo.file_sys_path = str(single(entry.get("gPCFileSysPath")) or "")
        gpo.created = str(single(entry.get("whenCreated")) or "")
        gpo.modified = str(single(entry.get("whenChanged")) or "")
        return gpo

    def __repr__(self):
        return f"GPO({self.guid!r}, {self.name!r})"


def sort_gpos(gpo_objects):
    return sorted(gpo_objects, key=lambda gpo: (gpo.name.casefold(), gpo.guid))


def load_remote(ldap):
    search_filter = "(objectCategory=groupPolicyContainer)"
    gpos = ldap.query(search_filter, GPO_ATTRIBUTES)
    return sort_gpos(GPO.from_entry(entry) for entry in gpos)


def load_local(ldap_folder, data_format):
    gpo_objects = []
    if data_format == "ldeep":
        if find_dump_file(ldap_folder, "_gpo.json") is None:
            raise EnumerationError(f"Can't find {ldap_folder}/*_gpo.json file")
        for entry in stream_items(path=ldap_folder, suffix="_gpo.json"):
            gpo_objects.append(GPO.from_entry(entry))

    elif data_format == "adexplorer":
        if find_dump_file(ldap_folder, "objects.ndjson") is None:
            raise EnumerationError(f"Can't find {ldap_folder}/*objects.ndjson file")
        for entry in stream_items(path=ldap_folder, suffix="objects.ndjson", multiple_values=True):
            if "groupPolicyContainer" not in entry.get("objectClass", []):
                continue
            # ADExplorer snapshots keep tombstoned objects
            if "Deleted Objects" in str(single(entry.get("distinguishedName"))):
                continue
            gpo_objects.append(GPO.from_entry(entry))

    else:
        raise ValueError(f"Unsupported format: {data_format}")

    return sort_gpos(gpo_objects)


def single(value):
    # ADExplorer exports every attribute as a list
    if isinstance(value, list):
        return value[0] if value else None
    return value


def as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
