from ldap3 import (
    Server,
    Connection,
    ALL,
    DSA,
    SASL,
    NTLM,
    KERBEROS,
)
from ldap3.core.exceptions import LDAPException
from gpoReporter.core.errors import DirectoryError
import os
import time


class LDAP:
    def __init__(self, server, context):
        self.server = server
        self.context = context
        self.domain = context.domain
        self.base_dn = None
        self.domain_fqdn = None
        self.connection = self.init_ldap_connection()

    def init_ldap_connection(self):
        ctx = self.context
        port = 636 if ctx.ldaps else 389
        server = Server(
            self.server,
            port=port,
            use_ssl=ctx.ldaps,
            get_info=ALL,
            connect_timeout=ctx.timeout,
        )

        if ctx.kerberos:
            if "KRB5CCNAME" not in os.environ:
                raise DirectoryError("KRB5CCNAME env not defined")
            if not os.path.isfile(os.environ["KRB5CCNAME"]):
                raise DirectoryError(f"Can't find {os.environ['KRB5CCNAME']} file")
            if "." not in self.server:
                raise DirectoryError("Kerberos authentication needs the controller FQDN")
            ldap_connection = Connection(
                server, authentication=SASL, sasl_mechanism=KERBEROS
            )
        else:
            if not ctx.username:
                raise DirectoryError("Please specify a username (-u)")
            user = "{}\\{}".format(ctx.domain, ctx.username)
            if not ctx.password:
                credentials = f"{ctx.lm_hash}:{ctx.nt_hash}"
            else:
                credentials = ctx.password
            ldap_connection = Connection(
                server,
                user=user,
                password=credentials,
                authentication=NTLM,
            )

        try:
            bound = ldap_connection.bind()
        except LDAPException as e:
            raise DirectoryError(f"Unable to reach LDAP server {self.server}: {e}") from e
        if not bound:
            raise DirectoryError(
                f"Unable to bind to the LDAP server {self.server}: {ldap_connection.result.get('description')}"
            )

        self.base_dn = server.info.other["defaultNamingContext"][0]
        self.domain_fqdn = (
            self.base_dn.lower().replace(",dc=", ".").replace("dc=", "")
        )
        return ldap_connection

    def query(self, target_filter, attributes, base=None):
        base = base if base else self.base_dn
        try:
            entry_generator = self.connection.extend.standard.paged_search(
                search_base=base,
                search_filter=target_filter,
                search_scope="SUBTREE",
                attributes=attributes,
                controls=[],
                paged_size=1000,
                generator=True,
            )
            result_set = []
            for x in entry_generator:
                if x.get("type") != "searchResEntry":
                    continue
                d = dict(x["attributes"])
                d["dn"] = x["dn"]
                result_set.append(d)
        except LDAPException as e:
            raise DirectoryError(
                f"Can't retrieve info from LDAP (base: {base}, filter: {target_filter}): {e}"
            ) from e
        return result_set

    def close(self):
        self.connection.unbind()


def probe_controller(host, context):
    """
    Anonymous rootDSE read against a candidate controller.

    Returns a Controller, raises LDAPException when the host does not answer.
    """
    port = 636 if context.ldaps else 389
    server = Server(host, port=port, use_ssl=context.ldaps, get_info=DSA, connect_timeout=context.timeout)
    connection = Connection(server, receive_timeout=context.timeout)
    start = time.monotonic()
    try:
        connection.bind()
        elapsed = time.monotonic() - start
        info = server.info.other if server.info else {}
    finally:
        connection.unbind()

    hostname = first_value(info.get("dnsHostName")) or host
    naming_context = first_value(info.get("defaultNamingContext")) or ""
    return Controller(
        address=host,
        hostname=hostname,
        site=site_from_server_name(first_value(info.get("serverName")) or ""),
        domain=dn_to_domain(naming_context),
        rtt=elapsed,
    )


class Controller:
    def __init__(self, address, hostname, site="", domain="", rtt=0.0):
        self.address = address
        self.hostname = hostname
        self.site = site
        self.domain = domain
        self.rtt = rtt

    def target(self, context):
        # Kerberos needs the SPN host name, an address is enough otherwise
        return self.hostname if context.kerberos else self.address

    def __str__(self):
        if self.site:
            return f"{self.hostname} ({self.address}, site {self.site})"
        return f"{self.hostname} ({self.address})"


def first_value(value):
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def site_from_server_name(server_name):
    # CN=DC01,CN=Servers,CN=<site>,CN=Sites,CN=Configuration,DC=corp,DC=local
    parts = server_name.split(",")
    for index, part in enumerate(parts):
        if part.upper() == "CN=SITES" and index > 0:
            return parts[index - 1].split("=", 1)[1]
    return ""


def dn_to_domain(dn):
    labels = [part.split("=", 1)[1] for part in dn.split(",") if part.strip().upper().startswith("DC=")]
    return ".".join(labels).lower()
