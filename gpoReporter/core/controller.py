from gpoReporter.core.errors import DiscoveryError
from gpoReporter.core import ldap
from ldap3.core.exceptions import LDAPException
import socket


def resolve_domain_addresses(domain):
    """
    Every address the domain name resolves to. In AD the domain apex carries
    an A record per domain controller.
    """
    try:
        infos = socket.getaddrinfo(domain, 389, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        raise DiscoveryError(f"Can't resolve domain {domain}: {e}") from e

    addresses = []
    for info in infos:
        address = info[4][0]
        if address not in addresses:
            addresses.append(address)
    return addresses


def discover_nearest_controller(context, probe=ldap.probe_controller, log=print):
    """
    Locate a reachable domain controller.

    A controller in the requested site wins. Without a site (or when no
    controller of that site answers) the fastest answer wins.
    """
    candidates = context.servers if context.servers else resolve_domain_addresses(context.domain)
    if not candidates:
        raise DiscoveryError(f"No domain controller candidate for {context.domain}")

    reachable = []
    for candidate in candidates:
        try:
            controller = probe(candidate, context)
        except (LDAPException, OSError) as e:
            log(f"[-] {candidate} does not answer: {e}")
            continue
        if context.site and controller.site.lower() == context.site.lower():
            return controller
        reachable.append(controller)

    if not reachable:
        raise DiscoveryError(
            f"No reachable domain controller for {context.domain} (tried {', '.join(candidates)})"
        )
    if context.site:
        log(f"[-] No controller answered in site {context.site}, using the fastest one")
    return min(reachable, key=lambda c: c.rtt)
