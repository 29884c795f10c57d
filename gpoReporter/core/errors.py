class GpoReporterError(Exception):
    """Base class for every error the tool reports to the user."""


class SettingsError(GpoReporterError):
    pass


class DiscoveryError(GpoReporterError):
    pass


class DirectoryError(GpoReporterError):
    pass


class EnumerationError(DirectoryError):
    pass


class ExportError(GpoReporterError):
    def __init__(self, gpo, cause):
        self.gpo = gpo
        self.cause = cause
        super().__init__(f"Failed to export {gpo.name} ({gpo.guid}): {cause}")


class OutputError(GpoReporterError):
    pass
