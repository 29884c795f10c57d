from gpoReporter.core.errors import GpoReporterError, OutputError
from gpoReporter.core.sysvol import parse_registry_pol
from gpoReporter.core.utils import decode_content, safe_file_stem
from xml.dom import minidom
from xml.parsers.expat import ExpatError
from collections import Counter
import base64
import os
import re

GP_NAMESPACE = "http://www.microsoft.com/GroupPolicy/Settings"
REPORT_EXTENSION = ".xml"

XML_INVALID_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
GPT_VERSION_PATTERN = re.compile(r"^\s*Version\s*=\s*(\d+)", re.IGNORECASE | re.MULTILINE)


class ExportResult:
    def __init__(self, gpo, path, report=None, error=None):
        self.gpo = gpo
        self.path = path
        self.report = report
        self.error = error

    @property
    def ok(self):
        return self.error is None


def build_report(gpo, domain, files, links, read_time, warn=print):
    """
    Render the XML report of a GPO.

    Arguments:
        @files: list
            (relative path, bytes) of every policy file in the GPO folder
        @links: list
            GPOLink objects pointing to this GPO
    """
    doc = minidom.Document()
    root = doc.createElement("GPO")
    root.setAttribute("xmlns", GP_NAMESPACE)
    doc.appendChild(root)

    identifier = add_element(doc, root, "Identifier")
    add_element(doc, identifier, "Identifier", gpo.guid)
    add_element(doc, identifier, "Domain", domain)
    add_element(doc, root, "Name", gpo.name)
    add_element(doc, root, "CreatedTime", gpo.created)
    add_element(doc, root, "ModifiedTime", gpo.modified)
    add_element(doc, root, "ReadTime", read_time)
    add_element(doc, root, "GpoStatus", gpo.status)

    sysvol_version = gpt_version(files)
    halves = (
        ("Computer", "machine/", gpo.computer_enabled, gpo.computer_version, sysvol_version & 0xFFFF),
        ("User", "user/", gpo.user_enabled, gpo.user_version, (sysvol_version >> 16) & 0xFFFF),
    )
    for section, prefix, enabled, version, sysvol in halves:
        node = add_element(doc, root, section)
        add_element(doc, node, "VersionDirectory", version)
        add_element(doc, node, "VersionSysvol", sysvol)
        add_element(doc, node, "Enabled", str(enabled).lower())
        for path, content in files:
            if path.lower().startswith(prefix):
                node.appendChild(extension_data(doc, path, content, warn))

    for path, content in files:
        if not path.lower().startswith(("machine/", "user/")):
            root.appendChild(extension_data(doc, path, content, warn))

    for link in links:
        node = add_element(doc, root, "LinksTo")
        add_element(doc, node, "SOMName", link.som_name)
        add_element(doc, node, "SOMPath", link.som_path)
        add_element(doc, node, "Enabled", str(link.enabled).lower())
        add_element(doc, node, "NoOverride", str(link.enforced).lower())

    return doc.toprettyxml(indent="  ")


def extension_data(doc, path, content, warn=print):
    node = doc.createElement("ExtensionData")
    node.setAttribute("path", path)
    lower = path.lower()

    if lower.endswith(".pol"):
        try:
            settings = parse_registry_pol(content)
        except ValueError as e:
            warn(f"[-] Can't decode {path} ({e}), embedding it as base64")
            node.setAttribute("encoding", "base64")
            node.appendChild(doc.createTextNode(base64.b64encode(content).decode("ascii")))
            return node
        for setting in settings:
            item = add_element(doc, node, "RegistrySetting")
            add_element(doc, item, "Key", setting["key"])
            add_element(doc, item, "ValueName", setting["name"])
            add_element(doc, item, "Type", setting["type"])
            add_element(doc, item, "Value", setting["value"])
        return node

    if lower.endswith(".xml"):
        try:
            parsed = minidom.parseString(content)
        except ExpatError as e:
            warn(f"[-] Can't parse {path} ({e}), embedding it as text")
        else:
            strip_whitespace(parsed.documentElement)
            node.appendChild(doc.importNode(parsed.documentElement, True))
            return node

    node.appendChild(doc.createTextNode(clean_text(decode_content(content))))
    return node


def add_element(doc, parent, tag, value=None):
    node = doc.createElement(tag)
    if value is not None:
        node.appendChild(doc.createTextNode(clean_text(str(value))))
    parent.appendChild(node)
    return node


def strip_whitespace(node):
    for child in list(node.childNodes):
        if child.nodeType == child.TEXT_NODE and not child.data.strip():
            node.removeChild(child)
        elif child.nodeType == child.ELEMENT_NODE:
            strip_whitespace(child)


def clean_text(text):
    return XML_INVALID_CHARS.sub("", text)


def gpt_version(files):
    for path, content in files:
        if path.lower() == "gpt.ini":
            match = GPT_VERSION_PATTERN.search(decode_content(content))
            if match:
                return int(match.group(1))
    return 0


def build_file_stems(gpo_objects):
    """
    Report file stem of each GPO, in the order of gpo_objects. Display names
    are not unique, GPOs sharing one get their GUID appended, then a counter
    when the GUID is missing or repeated.
    """
    counts = Counter(safe_file_stem(gpo.name).casefold() for gpo in gpo_objects)
    stems = []
    for gpo in gpo_objects:
        stem = safe_file_stem(gpo.name)
        if counts[stem.casefold()] > 1:
            stem = f"{stem}_{gpo.guid}" if gpo.guid else stem
        stems.append(stem)

    used = set()
    for i, stem in enumerate(stems):
        unique, n = stem, 1
        while unique.casefold() in used:
            n += 1
            unique = f"{stem}_{n}"
        used.add(unique.casefold())
        stems[i] = unique
    return stems


def create_report_folder(report_folder):
    try:
        os.makedirs(report_folder, exist_ok=True)
    except OSError as e:
        raise OutputError(f"Can't create report folder {report_folder}: {e}") from e


def export_report(directory, gpo, domain, report_folder, stem):
    """
    Fetch one report and write it to disk. Failures are returned, not raised,
    the caller applies the error policy.
    """
    path = os.path.join(report_folder, stem + REPORT_EXTENSION)
    try:
        report = directory.get_gpo_report(gpo, domain)
        with open(path, "w", encoding="utf-8") as f:
            f.write(report)
    except (GpoReporterError, OSError) as e:
        return ExportResult(gpo, path, error=e)
    return ExportResult(gpo, path, report=report)
