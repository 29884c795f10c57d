import os

ABORT = "abort"
CONTINUE = "continue"


class DomainContext:
    """
    Everything needed to talk to a domain: target, controllers and credentials.
    Passed explicitly to the directory backends.
    """
    def __init__(
        self,
        domain,
        servers=None,
        site=None,
        username="",
        password=None,
        lm_hash="",
        nt_hash="",
        kerberos=False,
        ldaps=False,
        timeout=5,
    ):
        self.domain = domain
        self.servers = servers if servers else []
        self.site = site
        self.username = username if username else ""
        self.password = password
        self.nt_hash = nt_hash if nt_hash else ""
        self.lm_hash = "aad3b435b51404eeaad3b435b51404ee" if not lm_hash else lm_hash
        self.kerberos = kerberos
        self.ldaps = ldaps
        self.timeout = timeout

    @classmethod
    def from_args(cls, args):
        lm_hash, nt_hash = split_hash(getattr(args, "hash", None))
        return cls(
            args.domain,
            servers=getattr(args, "server", None),
            site=getattr(args, "site", None),
            username=getattr(args, "user", ""),
            password=getattr(args, "password", None),
            lm_hash=lm_hash,
            nt_hash=nt_hash,
            kerberos=getattr(args, "kerberos", False),
            ldaps=getattr(args, "ldaps", False),
            timeout=getattr(args, "timeout", 5),
        )


class RunOptions:
    def __init__(self, report_folder, settings=None, on_error=ABORT, truncate=False, quiet=False):
        self.report_folder = os.path.abspath(report_folder)
        self.settings = settings
        self.on_error = on_error
        self.truncate = truncate
        self.quiet = quiet

    @classmethod
    def from_args(cls, args):
        return cls(
            args.report_folder,
            settings=args.gpo_settings,
            on_error=args.on_error,
            truncate=args.truncate,
            quiet=args.quiet,
        )


def split_hash(value):
    # format is [LM:]NT
    if not value:
        return "", ""
    if ":" in value:
        lm_hash, nt_hash = value.split(":", 1)
        return lm_hash, nt_hash
    return "", value
