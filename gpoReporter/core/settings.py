from gpoReporter.core.errors import SettingsError
from collections import namedtuple
import re

MatchRecord = namedtuple("MatchRecord", ["gpo_name", "setting"])
StatusRecord = namedtuple("StatusRecord", ["gpo_name", "status"])


def normalize_settings(raw_settings):
    """
    Split a semicolon separated settings string into trimmed phrases.

    Empty segments are kept: "foo;" gives ["foo", ""], and the empty phrase
    matches every report.
    """
    if not raw_settings:
        return []
    return [segment.strip() for segment in raw_settings.split(";")]


def compile_settings(phrases):
    patterns = []
    for phrase in phrases:
        try:
            patterns.append((phrase, re.compile(phrase, re.IGNORECASE)))
        except re.error as e:
            raise SettingsError(f"Invalid search phrase {phrase!r}: {e}") from e
    return patterns


def match_report(gpo_name, report, patterns):
    # every phrase is tested, one record per hit
    return [
        MatchRecord(gpo_name, phrase)
        for phrase, pattern in patterns
        if pattern.search(report)
    ]
