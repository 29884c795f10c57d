from gpoReporter.core.config import ABORT
from gpoReporter.core.errors import ExportError
from gpoReporter.core.exporter import save_settings_table, save_status_table
from gpoReporter.core.report import build_file_stems, create_report_folder, export_report
from gpoReporter.core.settings import StatusRecord, normalize_settings, compile_settings, match_report


class RunSummary:
    def __init__(self, controller, gpo_count, match_records, status_records, failures, tables):
        self.controller = controller
        self.gpo_count = gpo_count
        self.match_records = match_records
        self.status_records = status_records
        self.failures = failures
        self.tables = tables


def process_gpos(context, options, directory, log=print):
    """
    Export every GPO report of the domain and build the summary tables.

    Steps run in order: phrases are validated, a controller is located, GPOs
    are listed, each report is exported and searched, then both tables are
    written. Any GpoReporterError raised on the way aborts the run.
    """
    progress = (lambda message: None) if options.quiet else log

    patterns = compile_settings(normalize_settings(options.settings))

    controller = directory.discover_nearest_controller(context.domain)
    progress(f"[*] Using domain controller {controller}")

    gpo_objects = directory.list_gpos(context.domain, controller)
    progress(f"[*] {len(gpo_objects)} GPOs found in {context.domain}")

    create_report_folder(options.report_folder)
    stems = build_file_stems(gpo_objects)

    match_records = []
    status_records = []
    failures = []
    for gpo, stem in zip(gpo_objects, stems):
        status_records.append(StatusRecord(gpo.name, gpo.status))
        result = export_report(directory, gpo, context.domain, options.report_folder, stem)
        if not result.ok:
            if options.on_error == ABORT:
                raise ExportError(gpo, result.error) from result.error
            log(f"[-] {ExportError(gpo, result.error)}")
            failures.append(result)
            continue
        progress(f"[+] {gpo.name} exported to {result.path}")
        match_records.extend(match_report(gpo.name, result.report, patterns))

    tables = []
    if patterns:
        tables.append(save_settings_table(options.report_folder, match_records, options.truncate))
    tables.append(save_status_table(options.report_folder, status_records, options.truncate))

    return RunSummary(controller, len(gpo_objects), match_records, status_records, failures, tables)
