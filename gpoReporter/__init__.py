#!/usr/bin/env python3

from gpoReporter.core.config import DomainContext, RunOptions, ABORT, CONTINUE
from gpoReporter.core.directory import RemoteDirectory, LocalDirectory
from gpoReporter.core.errors import GpoReporterError
from gpoReporter.core.processor import process_gpos
import argparse
import sys


def add_run_arguments(parser):
    parser.add_argument("-d", "--domain", required=True, help="Domain FQDN")
    parser.add_argument("-o", "--report-folder", required=True, help="Folder receiving the GPO reports and the CSV tables (created if missing)")
    parser.add_argument("-g", "--gpo-settings", help="Semicolon separated phrases to search for in the reports, e.g. \"password policy; screensaver\". Phrases are case-insensitive regular expressions, escape special characters to match them literally: \"Program Files \\(x86\\)\"")
    parser.add_argument("--on-error", choices=[ABORT, CONTINUE], default=ABORT, help="What to do when a GPO report can't be exported (default: abort)")
    parser.add_argument("--truncate", action="store_true", help="Overwrite GPO_Status.csv and GPO_Settings.csv instead of appending to them")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print errors")


def build_parser():
    parser = argparse.ArgumentParser(description="GPO report exporter and settings finder")
    subparsers = parser.add_subparsers(dest="mode", help="Choose mode")

    # Remote export
    parser_remote = subparsers.add_parser("remote", help="Export GPO reports via LDAP/SYSVOL")
    add_run_arguments(parser_remote)
    parser_remote.add_argument("-s", "--server", action="append", help="Domain controller IP or FQDN, can be repeated (default: every address of the domain)")
    parser_remote.add_argument("--site", help="Prefer a domain controller of this AD site")
    parser_remote.add_argument("-u", "--user", help="Username")
    parser_remote.add_argument("-p", "--password", help="Password")
    parser_remote.add_argument("-H", "--hash", help="NTLM authentication, format is [LM:]NT")
    parser_remote.add_argument("-k", "--kerberos", action="store_true", help="Use Kerberos authentication (ticket from KRB5CCNAME)")
    parser_remote.add_argument("--ldaps", action="store_true", help="Use LDAPS (636) instead of LDAP (389)")
    parser_remote.add_argument("--timeout", type=int, default=5, help="Connection timeout in seconds (default: 5)")

    # Local export
    parser_local = subparsers.add_parser("local", help="Export GPO reports from a SYSVOL copy and an LDAP dump")
    parser_local.add_argument("sysvol_folder", help="SYSVOL folder containing the policies")
    parser_local.add_argument("ldap_folder", help="Folder with LDAP dump in ldeep format")
    parser_local.add_argument("-f", "--format", help="JSON files input format (default ldeep)", choices=["ldeep", "adexplorer"], default="ldeep")
    add_run_arguments(parser_local)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.mode == "remote":
        if not args.kerberos and args.password is None and args.hash is None:
            parser.error("You must specify a password, a NTLM hash or use Kerberos authentication")
        if not args.kerberos and not args.user:
            parser.error("Please specify a username (-u)")
        context = DomainContext.from_args(args)
        directory = RemoteDirectory(context)
    elif args.mode == "local":
        context = DomainContext(args.domain)
        directory = LocalDirectory(args.sysvol_folder, args.ldap_folder, args.format)
    else:
        parser.print_help()
        sys.exit(1)

    options = RunOptions.from_args(args)
    try:
        summary = process_gpos(context, options, directory)
    except GpoReporterError as e:
        print(f"[-] {e}")
        sys.exit(1)
    finally:
        directory.close()

    if not options.quiet:
        print(f"[*] {summary.gpo_count} GPOs processed, {len(summary.match_records)} matching settings")
        for table in summary.tables:
            print(f"[*] Table written to {table}")
    if summary.failures:
        print(f"[-] {len(summary.failures)} GPO reports could not be exported")
        sys.exit(2)


if __name__ == "__main__":
    main()
