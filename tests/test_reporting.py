import io
import json

from todoscan.core.models import Finding, MemberKind, ModuleFailure, ModuleInspectionError, ScanReport
from todoscan.core.reporting import ConsoleReporter, format_finding, format_marker, write_json_report
from todoscan.marker import Todo


def test_empty_owner_is_hidden_and_zero_priority_is_shown():
    lines = format_marker(Todo("tidy up", owner="", priority=0))
    assert lines == ["  Message: tidy up", "  Priority: 0"]


def test_optional_fields_print_in_declaration_order():
    lines = format_marker(Todo("tidy up", owner="alice", priority=2))
    assert lines == ["  Message: tidy up", "  Owner: alice", "  Priority: 2"]


def test_unset_fields_are_hidden():
    assert format_marker(Todo("only a message")) == ["  Message: only a message"]


def test_finding_block_ends_with_blank_line():
    finding = Finding("app.widgets", MemberKind.CONSTRUCTOR, "Widget", "__init__", Todo("inject deps"))
    assert format_finding(finding) == ["[CONSTRUCTOR] Widget.ctor", "  Message: inject deps", ""]


def test_console_layout_for_failing_scan():
    out = io.StringIO()
    reporter = ConsoleReporter(out)
    report = ScanReport()
    finding = Finding("app.widgets", MemberKind.CLASS, "Widget", None, Todo("build it", owner="bob"))
    report.modules.append("app.widgets")
    report.findings.append(finding)

    reporter.begin()
    reporter.begin_module("app.widgets")
    reporter.finding(finding)
    reporter.module_failure(ModuleFailure("app.broken", "ImportError: nope"))
    reporter.end(report)

    assert out.getvalue().splitlines() == [
        "Starting TODO scan...",
        "---------------------------------",
        "--- Scanning module: app.widgets ---",
        "",
        "[CLASS] Widget",
        "  Message: build it",
        "  Owner: bob",
        "",
        "Could not scan types in app.broken: ImportError: nope",
        "---------------------------------",
        "Scan complete. Found 1 TODO item(s)! Build would fail.",
    ]


def test_console_summary_for_clean_scan():
    out = io.StringIO()
    ConsoleReporter(out).end(ScanReport())
    assert out.getvalue().splitlines()[-1] == "Scan complete. No TODO items found. Build passes!"


def test_nested_failure_details_are_listed():
    error = ModuleInspectionError("app.models", [("Order", NameError("name 'X' is not defined"))])
    failure = error.to_failure()
    assert failure.reason == "1 type(s) failed to load"
    assert failure.details == ["Order: NameError: name 'X' is not defined"]


def test_json_report_mirrors_console(tmp_path):
    report = ScanReport(
        findings=[Finding("app.jobs", MemberKind.FUNCTION, None, "run", Todo("schedule", priority=0))],
        failures=[ModuleFailure("app.bad", "RuntimeError: boom")],
        modules=["app.jobs"],
    )
    path = write_json_report(report, tmp_path / "nested" / "todo.json")
    data = json.loads(path.read_text())
    assert data["total"] == 1
    assert data["passed"] is False
    assert data["findings"] == [
        {
            "module": "app.jobs",
            "kind": "FUNCTION",
            "location": "[FUNCTION] run",
            "message": "schedule",
            "owner": None,
            "priority": 0,
        }
    ]
    assert data["failures"][0]["module"] == "app.bad"
