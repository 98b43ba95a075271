"""Export module for JSON files and console rendering."""

from .json_exporter import JSONExporter
from .console import ConsoleReporter, render_result, stats_table, comparison_panel, family_summary

__all__ = [
    "JSONExporter",
    "ConsoleReporter",
    "render_result",
    "stats_table",
    "comparison_panel",
    "family_summary",
]
