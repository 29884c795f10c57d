from gpoReporter.core import controller as dc
from gpoReporter.core import gpo as gpos
from gpoReporter.core import ou as ous
from gpoReporter.core.errors import DirectoryError, DiscoveryError, EnumerationError
from gpoReporter.core.ldap import LDAP, Controller
from gpoReporter.core.report import build_report
from gpoReporter.core.sysvol import SMB, SMB_ERRORS, find_policies_folder, read_policy_files_local
from datetime import datetime, timezone
import ijson
import os


def utc_now():
    return datetime.now(timezone.utc).isoformat()


class RemoteDirectory:
    """
    Live domain: LDAP for the GPO containers and their links, SMB for SYSVOL.
    """
    def __init__(self, context, log=print, clock=utc_now):
        self.context = context
        self.log = log
        self.clock = clock
        self.controller = None
        self.ldap = None
        self.smb = None
        self.link_map = {}

    def discover_nearest_controller(self, domain):
        self.controller = dc.discover_nearest_controller(self.context, log=self.log)
        if self.controller.domain and self.controller.domain != domain.lower():
            self.log(f"[-] {self.controller.hostname} serves {self.controller.domain}, not {domain}")
        return self.controller

    def list_gpos(self, domain, controller):
        self.controller = controller
        try:
            self.ldap = LDAP(controller.target(self.context), self.context)
            gpo_objects = gpos.load_remote(self.ldap)
            self.link_map = ous.build_link_map(ous.load_remote(self.ldap))
        except DirectoryError as e:
            raise EnumerationError(f"Can't list GPOs of {domain}: {e}") from e
        return gpo_objects

    def get_gpo_report(self, gpo, domain):
        if self.smb is None:
            self.smb = SMB(self.controller.target(self.context), self.context)
        try:
            files = self.smb.read_policy_files(gpo.file_sys_path)
        except SMB_ERRORS as e:
            raise DirectoryError(f"Can't read {gpo.file_sys_path}: {e}") from e
        return build_report(gpo, domain, files, self.link_map.get(gpo.guid, []), self.clock(), warn=self.log)

    def close(self):
        if self.smb is not None:
            self.smb.close()
        if self.ldap is not None:
            self.ldap.close()


class LocalDirectory:
    """
    Offline audit: LDAP dump (ldeep or ADExplorer) plus a copy of SYSVOL.
    """
    def __init__(self, sysvol_folder, ldap_folder, data_format="ldeep", log=print, clock=utc_now):
        self.sysvol_folder = sysvol_folder
        self.ldap_folder = ldap_folder
        self.data_format = data_format
        self.log = log
        self.clock = clock
        self.policies_path = None
        self.link_map = {}

    def discover_nearest_controller(self, domain):
        for folder in (self.ldap_folder, self.sysvol_folder):
            if not os.path.isdir(folder):
                raise DiscoveryError(f"Can't find folder {folder}")
        return Controller(address=os.path.abspath(self.ldap_folder), hostname="offline dump", domain=domain.lower())

    def list_gpos(self, domain, controller):
        try:
            gpo_objects = gpos.load_local(self.ldap_folder, self.data_format)
            self.link_map = ous.build_link_map(ous.load_local(self.ldap_folder, self.data_format))
        except (ijson.JSONError, OSError) as e:
            raise EnumerationError(f"Can't read LDAP dump in {self.ldap_folder}: {e}") from e
        return gpo_objects

    def get_gpo_report(self, gpo, domain):
        if self.policies_path is None:
            self.policies_path = find_policies_folder(self.sysvol_folder)
        files = read_policy_files_local(self.policies_path, gpo.guid)
        return build_report(gpo, domain, files, self.link_map.get(gpo.guid, []), self.clock(), warn=self.log)

    def close(self):
        pass
