import socket

import pytest
from ldap3.core.exceptions import LDAPSocketOpenError

from gpoReporter.core.config import DomainContext
from gpoReporter.core.controller import discover_nearest_controller, resolve_domain_addresses
from gpoReporter.core.errors import DiscoveryError
from gpoReporter.core.ldap import Controller, dn_to_domain, site_from_server_name


def fake_probe(answers):
    def probe(host, context):
        answer = answers[host]
        if isinstance(answer, Exception):
            raise answer
        return answer
    return probe


ANSWERS = {
    "10.0.0.1": Controller("10.0.0.1", "dc01.corp.local", site="Paris", rtt=0.050),
    "10.0.0.2": Controller("10.0.0.2", "dc02.corp.local", site="Lyon", rtt=0.010),
    "10.0.0.3": LDAPSocketOpenError("connection refused"),
}


def test_site_match_wins_over_latency():
    context = DomainContext("corp.local", servers=["10.0.0.3", "10.0.0.2", "10.0.0.1"], site="paris")
    controller = discover_nearest_controller(context, probe=fake_probe(ANSWERS), log=lambda m: None)
    assert controller.hostname == "dc01.corp.local"


def test_fastest_controller_without_site():
    context = DomainContext("corp.local", servers=["10.0.0.1", "10.0.0.2", "10.0.0.3"])
    controller = discover_nearest_controller(context, probe=fake_probe(ANSWERS), log=lambda m: None)
    assert controller.hostname == "dc02.corp.local"


def test_unknown_site_falls_back_to_fastest():
    messages = []
    context = DomainContext("corp.local", servers=["10.0.0.1", "10.0.0.2"], site="Berlin")
    controller = discover_nearest_controller(context, probe=fake_probe(ANSWERS), log=messages.append)
    assert controller.hostname == "dc02.corp.local"
    assert any("Berlin" in m for m in messages)


def test_no_reachable_controller_is_fatal():
    context = DomainContext("corp.local", servers=["10.0.0.3"])
    with pytest.raises(DiscoveryError, match="No reachable domain controller"):
        discover_nearest_controller(context, probe=fake_probe(ANSWERS), log=lambda m: None)


def test_unresolvable_domain_is_fatal(monkeypatch):
    def fail(*args, **kwargs):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", fail)
    with pytest.raises(DiscoveryError):
        resolve_domain_addresses("corp.invalid")


def test_domain_addresses_are_deduplicated(monkeypatch):
    infos = [
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.1", 389)),
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.2", 389)),
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.1", 389)),
    ]
    monkeypatch.setattr(socket, "getaddrinfo", lambda *args, **kwargs: infos)
    assert resolve_domain_addresses("corp.local") == ["10.0.0.1", "10.0.0.2"]


def test_root_dse_helpers():
    server_name = "CN=DC01,CN=Servers,CN=Default-First-Site-Name,CN=Sites,CN=Configuration,DC=corp,DC=local"
    assert site_from_server_name(server_name) == "Default-First-Site-Name"
    assert site_from_server_name("") == ""
    assert dn_to_domain("DC=corp,DC=local") == "corp.local"


def test_kerberos_targets_host_name():
    controller = Controller("10.0.0.1", "dc01.corp.local")
    assert controller.target(DomainContext("corp.local", kerberos=True)) == "dc01.corp.local"
    assert controller.target(DomainContext("corp.local")) == "10.0.0.1"
