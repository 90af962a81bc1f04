"""
SourceTrace v0.1.0

I/O Module for SourceTrace.

scenario_io.py - scenario files (YAML/JSON), report CSVs, result and
comparison export (JSON/YAML/TSV)

Author: SourceTrace Development Team
License: MIT
"""

from .scenario_io import (
    Scenario,
    scenario_from_dict,
    load_scenario,
    save_scenario,
    load_reports_csv,
    write_result,
    write_comparison,
    export_summary_tsv,
)

__all__ = [
    "Scenario",
    "scenario_from_dict",
    "load_scenario",
    "save_scenario",
    "load_reports_csv",
    "write_result",
    "write_comparison",
    "export_summary_tsv",
]
