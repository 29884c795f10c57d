import chardet
import ijson
import os, glob
import re

INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def find_dump_file(path, suffix):
    matching_files = sorted(glob.glob(os.path.join(path, f"*{suffix}")))
    return matching_files[0] if matching_files else None


def stream_items(path, suffix, multiple_values=False):
    """
    Stream objects from an LDAP dump file.

    ldeep dumps are a single JSON array, ADExplorer exports are ndjson
    (one object per line), hence multiple_values.
    """
    file = find_dump_file(path, suffix)
    if file is None:
        return
    prefix = "" if multiple_values else "item"
    with open(file, "rb") as f:
        for obj in ijson.items(f, prefix, multiple_values=multiple_values):
            yield obj


def decode_content(file_content):
    if not file_content:
        return ""
    encoding = chardet.detect(file_content)["encoding"] or "utf-8"
    try:
        return file_content.decode(encoding)
    except (LookupError, UnicodeDecodeError):
        return file_content.decode("utf-8", errors="replace")


def safe_file_stem(name):
    stem = INVALID_FILENAME_CHARS.sub("_", name).strip().rstrip(".")
    return stem if stem else "_"


def split_dn(dn):
    # Split on commas that are not escaped
    return re.split(r'(?<!\\),', dn)


def canonical_name(dn):
    """
    OU=Workstations,OU=Paris,DC=corp,DC=local -> corp.local/Paris/Workstations
    """
    domain_labels = []
    containers = []
    for part in split_dn(dn):
        attribute, _, value = part.strip().partition("=")
        if attribute.upper() == "DC":
            domain_labels.append(value)
        else:
            containers.append(value.replace("\\,", ","))
    return "/".join([".".join(domain_labels).lower()] + list(reversed(containers)))


def rdn_value(dn):
    first = split_dn(dn)[0]
    return first.partition("=")[2].replace("\\,", ",")
