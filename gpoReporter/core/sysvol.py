from pathlib import Path
import re
import struct
from impacket.smbconnection import SMBConnection, SessionError
from impacket.krb5.ccache import CCache
from impacket.krb5.kerberosv5 import KerberosError
from impacket.nmb import NetBIOSError, NetBIOSTimeout
from gpoReporter.core.errors import DirectoryError

# impacket transport and auth errors do not all derive from SessionError
SMB_ERRORS = (SessionError, KerberosError, NetBIOSError, NetBIOSTimeout, OSError)

POLICY_EXTENSIONS = (".xml", ".inf", ".ini", ".pol", ".cmt", ".aas", ".csv")

GUID_PATTERN = re.compile(r"\{[A-F0-9\-]{36}\}", re.IGNORECASE)

REGISTRY_TYPES = {
    0: "REG_NONE",
    1: "REG_SZ",
    2: "REG_EXPAND_SZ",
    3: "REG_BINARY",
    4: "REG_DWORD",
    5: "REG_DWORD_BIG_ENDIAN",
    6: "REG_LINK",
    7: "REG_MULTI_SZ",
    11: "REG_QWORD",
}


class SMB:
    def __init__(self, server, context):
        self.server = server.split("//")[-1] if "//" in server else server
        self.context = context
        self.aesKey = None
        self.connection = self.init_smb_connection()

    def init_smb_connection(self):
        ctx = self.context
        try:
            conn = SMBConnection(self.server, self.server, sess_port=445, timeout=ctx.timeout)
            if ctx.kerberos:
                domain, user, TGT, TGS = CCache.parseFile(
                    ctx.domain, ctx.username, f"cifs/{conn.getRemoteName()}"
                )
                conn.kerberosLogin(
                    user,
                    "",
                    domain,
                    ctx.lm_hash,
                    ctx.nt_hash,
                    self.aesKey,
                    None,
                    TGT,
                    TGS,
                )
            elif not ctx.password:
                conn.login(ctx.username, "", ctx.domain, lmhash=ctx.lm_hash, nthash=ctx.nt_hash)
            else:
                conn.login(ctx.username, ctx.password, ctx.domain)
        except SMB_ERRORS as e:
            raise DirectoryError(f"Unable to open SMB session on {self.server}: {e}") from e
        return conn

    def read_policy_files(self, file_sys_path):
        """
        All policy files below a GPO folder as (relative path, bytes), sorted.

        file_sys_path is the gPCFileSysPath UNC path,
        \\\\corp.local\\SysVol\\corp.local\\Policies\\{GUID}
        """
        share, root = split_unc_path(file_sys_path)
        files = []
        self._walk(share, root, "", files)
        return sorted(files, key=lambda item: item[0].lower())

    def _walk(self, share, root, relative, files):
        directory = root + "\\" + relative.replace("/", "\\") if relative else root
        for f in self.connection.listPath(share, f"{directory}\\*"):
            name = f.get_longname()
            if name in (".", ".."):
                continue
            child = f"{relative}/{name}" if relative else name
            if f.is_directory():
                self._walk(share, root, child, files)
            elif name.lower().endswith(POLICY_EXTENSIONS):
                chunks = []
                remote_path = root + "\\" + child.replace("/", "\\")
                self.connection.getFile(share, remote_path, chunks.append)
                files.append((child, b"".join(chunks)))

    def close(self):
        self.connection.close()


def split_unc_path(file_sys_path):
    parts = [part for part in file_sys_path.replace("/", "\\").split("\\") if part]
    if len(parts) < 3:
        raise DirectoryError(f"Unexpected gPCFileSysPath: {file_sys_path}")
    # parts[0] is the host or domain name
    return parts[1], "\\" + "\\".join(parts[2:])


def find_policies_folder(sysvol_folder):
    sysvol_path = Path(sysvol_folder).resolve()
    if sysvol_path.name.lower() == "policies":
        return sysvol_path
    for path in sysvol_path.rglob("*"):
        if path.is_dir() and path.name.lower() == "policies":
            return path.resolve()
    raise DirectoryError(f"Can't find Policies folder in {sysvol_folder}")


def read_policy_files_local(policies_path, guid):
    gpo_dir = None
    for entry in policies_path.iterdir():
        if entry.is_dir() and GUID_PATTERN.fullmatch(entry.name) and entry.name.upper() == guid.upper():
            gpo_dir = entry
            break
    if gpo_dir is None:
        raise DirectoryError(f"Can't find {guid} folder in {policies_path}")

    files = []
    for path in gpo_dir.rglob("*"):
        if path.is_file() and path.name.lower().endswith(POLICY_EXTENSIONS):
            files.append((path.relative_to(gpo_dir).as_posix(), path.read_bytes()))
    return sorted(files, key=lambda item: item[0].lower())


def parse_registry_pol(data):
    """
    Decode a Registry.pol (PReg) file.

    Body is a sequence of [key;value name;type;size;data] records, UTF-16LE
    strings, little endian DWORDs. Raises ValueError on malformed content.
    """
    if data[:4] != b"PReg":
        raise ValueError("missing PReg signature")
    settings = []
    pos = 8
    while pos < len(data):
        pos = expect(data, pos, "[")
        key, pos = read_string(data, pos)
        pos = expect(data, pos, ";")
        value_name, pos = read_string(data, pos)
        pos = expect(data, pos, ";")
        value_type, pos = read_dword(data, pos)
        pos = expect(data, pos, ";")
        size, pos = read_dword(data, pos)
        pos = expect(data, pos, ";")
        if pos + size > len(data):
            raise ValueError(f"truncated value for {key}\\{value_name}")
        raw = data[pos:pos + size]
        pos = expect(data, pos + size, "]")
        settings.append({
            "key": key,
            "name": value_name,
            "type": REGISTRY_TYPES.get(value_type, str(value_type)),
            "value": format_registry_value(value_type, raw),
        })
    return settings


def expect(data, pos, char):
    if data[pos:pos + 2] != char.encode("utf-16-le"):
        raise ValueError(f"expected {char!r} at offset {pos}")
    return pos + 2


def read_string(data, pos):
    end = pos
    while data[end:end + 2] != b"\x00\x00":
        if end + 2 > len(data):
            raise ValueError(f"unterminated string at offset {pos}")
        end += 2
    return data[pos:end].decode("utf-16-le"), end + 2


def read_dword(data, pos):
    if pos + 4 > len(data):
        raise ValueError(f"truncated DWORD at offset {pos}")
    return struct.unpack_from("<I", data, pos)[0], pos + 4


def format_registry_value(value_type, raw):
    if value_type in (1, 2, 6):
        return raw.decode("utf-16-le", errors="replace").rstrip("\x00")
    if value_type == 7:
        strings = raw.decode("utf-16-le", errors="replace").split("\x00")
        return "; ".join(s for s in strings if s)
    if value_type == 4 and len(raw) == 4:
        return str(struct.unpack("<I", raw)[0])
    if value_type == 5 and len(raw) == 4:
        return str(struct.unpack(">I", raw)[0])
    if value_type == 11 and len(raw) == 8:
        return str(struct.unpack("<Q", raw)[0])
    return raw.hex()
