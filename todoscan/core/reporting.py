from __future__ import annotations
import json
import sys
from dataclasses import fields
from pathlib import Path
from typing import Any, List, Optional, TextIO

from tqdm import tqdm

from ..marker import Todo
from .models import Finding, ModuleFailure, ScanReport

SEPARATOR = "---------------------------------"


def should_print(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value)
    return True


def format_marker(marker: Todo) -> List[str]:
    """Indented ``Message:`` line followed by every optional field that is set."""

    lines = [f"  Message: {marker.message}"]
    for f in fields(marker):
        if f.name == "message":
            continue
        value = getattr(marker, f.name)
        if should_print(value):
            lines.append(f"  {f.name.capitalize()}: {value}")
    return lines


def format_finding(finding: Finding) -> List[str]:
    return [finding.location_label, *format_marker(finding.marker), ""]


def format_failure(failure: ModuleFailure) -> List[str]:
    lines = [f"Could not scan types in {failure.module}: {failure.reason}"]
    lines.extend(f"  - {detail}" for detail in failure.details)
    return lines


def format_summary(report: ScanReport) -> str:
    if report.passed:
        return "Scan complete. No TODO items found. Build passes!"
    return f"Scan complete. Found {report.total_count} TODO item(s)! Build would fail."


class ConsoleReporter:
    """Writes the line-oriented scan report as the scan progresses.

    Lines go through ``tqdm.write`` so an active progress bar on stderr is
    cleared and redrawn around them.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream

    def _emit(self, line: str = "") -> None:
        tqdm.write(line, file=self.stream or sys.stdout)

    # Lifecycle hooks
    def begin(self) -> None:
        self._emit("Starting TODO scan...")
        self._emit(SEPARATOR)

    def begin_module(self, name: str) -> None:
        self._emit(f"--- Scanning module: {name} ---")
        self._emit()

    def finding(self, finding: Finding) -> None:
        for line in format_finding(finding):
            self._emit(line)

    def module_failure(self, failure: ModuleFailure) -> None:
        for line in format_failure(failure):
            self._emit(line)

    def end(self, report: ScanReport) -> None:
        self._emit(SEPARATOR)
        self._emit(format_summary(report))


def write_json_report(report: ScanReport, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2))
    return path
