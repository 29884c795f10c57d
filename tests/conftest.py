from gpoReporter.core.config import DomainContext, RunOptions
from gpoReporter.core.errors import DirectoryError
from gpoReporter.core.gpo import GPO
from gpoReporter.core.ldap import Controller
import pytest


def make_gpo(name, guid, flags=0):
    gpo = GPO(guid)
    gpo.name = name
    gpo.flags = flags
    return gpo


class FakeDirectory:
    """In-memory directory: reports are given as plain strings keyed by GUID."""

    def __init__(self, gpos=None, reports=None, failing=()):
        self.gpos = gpos or []
        self.reports = reports or {}
        self.failing = set(failing)
        self.calls = []

    def discover_nearest_controller(self, domain):
        self.calls.append(("discover", domain))
        return Controller(address="10.0.0.1", hostname="dc01.corp.local", site="Paris", domain=domain)

    def list_gpos(self, domain, controller):
        self.calls.append(("list", domain, controller.hostname))
        return sorted(self.gpos, key=lambda gpo: (gpo.name.casefold(), gpo.guid))

    def get_gpo_report(self, gpo, domain):
        self.calls.append(("report", gpo.guid))
        if gpo.guid in self.failing:
            raise DirectoryError(f"access denied on {gpo.guid}")
        return self.reports.get(gpo.guid, f"<GPO><Name>{gpo.name}</Name></GPO>")

    def close(self):
        pass


@pytest.fixture
def context():
    return DomainContext("corp.local")


@pytest.fixture
def alpha_beta():
    alpha = make_gpo("Alpha", "{AAAAAAAA-0000-0000-0000-000000000001}", flags=0)
    beta = make_gpo("Beta", "{BBBBBBBB-0000-0000-0000-000000000002}", flags=3)
    reports = {
        alpha.guid: "<GPO><Name>Alpha</Name><Setting>Password Policy: 14 characters</Setting></GPO>",
        beta.guid: "<GPO><Name>Beta</Name><Setting>Lock workstation</Setting></GPO>",
    }
    return FakeDirectory([beta, alpha], reports)


@pytest.fixture
def options_factory(tmp_path):
    def factory(settings=None, **kwargs):
        return RunOptions(str(tmp_path / "reports"), settings=settings, **kwargs)
    return factory
