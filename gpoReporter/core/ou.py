from gpoReporter.core.gpo import single
from gpoReporter.core.utils import stream_items, canonical_name, rdn_value
import re

GPLINK_PATTERN = re.compile(r"(\{[A-F0-9\-]{36}\}).*?;(\d+)\]", re.IGNORECASE)


class GPOLink:
    def __init__(self, som_name, som_path, enabled, enforced):
        self.som_name = som_name
        self.som_path = som_path
        self.enabled = enabled
        self.enforced = enforced


class OU:
    def __init__(self, dn):
        self.dn = dn
        self.gplink = ""

    @classmethod
    def from_entry(cls, entry):
        ou = cls(str(single(entry.get("distinguishedName")) or entry.get("dn", "")))
        ou.gplink = str(single(entry.get("gPLink")) or "")
        return ou

    def linked_gpos(self):
        """
        (guid, enabled, enforced) for each GPO linked to this container.
        Link options: bit 1 disables the link, bit 2 enforces it.
        """
        links = []
        for guid, status in GPLINK_PATTERN.findall(self.gplink):
            status = int(status)
            links.append((guid.upper(), not bool(status & 1), bool(status & 2)))
        return links


def load_remote(ldap):
    search_filter = "(&(|(objectClass=organizationalUnit)(objectClass=domain))(gPLink=*))"
    attributes = ["distinguishedName", "gPLink"]
    return [OU.from_entry(entry) for entry in ldap.query(search_filter, attributes)]


def load_local(ldap_folder, data_format):
    ou_objects = []
    if data_format == "ldeep":
        for entry in stream_items(path=ldap_folder, suffix="_ou.json"):
            if entry.get("gPLink"):
                ou_objects.append(OU.from_entry(entry))

    elif data_format == "adexplorer":
        for entry in stream_items(path=ldap_folder, suffix="objects.ndjson", multiple_values=True):
            classes = entry.get("objectClass", [])
            if any(obj in classes for obj in ("organizationalUnit", "domain")) and entry.get("gPLink"):
                if "Deleted Objects" not in str(single(entry.get("distinguishedName"))):
                    ou_objects.append(OU.from_entry(entry))

    return ou_objects


def build_link_map(ou_objects):
    link_map = {}
    for ou in ou_objects:
        for guid, enabled, enforced in ou.linked_gpos():
            link_map.setdefault(guid, []).append(
                GPOLink(rdn_value(ou.dn), canonical_name(ou.dn), enabled, enforced)
            )
    return link_map
