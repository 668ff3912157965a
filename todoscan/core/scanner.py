from __future__ import annotations

import inspect
import logging
from types import ModuleType
from typing import List, Optional, Sequence, Set, Tuple

from tqdm import tqdm

from ..marker import get_marker
from .loader import ModuleUnit
from .models import Finding, MemberKind, ModuleInspectionError, ScanReport
from .reporting import ConsoleReporter
from .utils import (
    CONSTRUCTOR_NAMES,
    annotation_marker,
    is_nested_class,
    is_property,
    iter_declared,
    marked_accessor,
    own_annotations,
    unwrap_function,
)


DEFAULT_LOGGER_NAME = "todoscan"


def configure_logging(verbose: bool = False, logger_name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Configure and return the package logger.

    Makes sure script usage gets a handler even when ``logging.basicConfig``
    was never called. ``verbose`` raises the level to INFO.
    """

    logger = logging.getLogger(logger_name)
    level = logging.INFO if verbose else logging.WARNING
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s")
        )
        logger.addHandler(handler)

    return logger


class TodoScanner:
    def __init__(
        self,
        units: Sequence[ModuleUnit],
        reporter: Optional[ConsoleReporter] = None,
        *,
        logger: Optional[logging.Logger] = None,
        verbose: bool = False,
        show_progress: bool = False,
        progress_desc: str = "Scanning modules",
    ) -> None:
        self.units = list(units)
        self.reporter = reporter or ConsoleReporter()
        base_logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.__class__.__name__.lower())
        self.verbose = verbose
        if verbose:
            self.logger.setLevel(logging.INFO)
        self.show_progress = bool(show_progress)
        self.progress_desc = progress_desc

    def scan(self) -> ScanReport:
        report = ScanReport()
        self.reporter.begin()

        progress_bar = None
        if self.show_progress and self.units:
            # disable=None turns the bar off when stderr is not a terminal
            progress_bar = tqdm(total=len(self.units), desc=self.progress_desc, unit="module", disable=None)

        try:
            for unit in self.units:
                try:
                    self._scan_unit(unit, report)
                except ModuleInspectionError as exc:
                    self._report_failure(exc, report)
                finally:
                    if progress_bar is not None:
                        progress_bar.update(1)
        finally:
            if progress_bar is not None:
                progress_bar.close()

        self.reporter.end(report)
        self.logger.info(
            "Scanned %d module(s): %d finding(s), %d failure(s)",
            len(report.modules),
            report.total_count,
            len(report.failures),
        )
        return report

    def _scan_unit(self, unit: ModuleUnit, report: ScanReport) -> None:
        if self.verbose:
            self.logger.info("Scanning %s", unit.name)
        self.reporter.begin_module(unit.name)
        if unit.error is not None:
            raise unit.error
        module = unit.module
        if module is None:
            return
        report.modules.append(unit.name)
        self._scan_module(unit.name, module, report)

    def _scan_module(self, name: str, module: ModuleType, report: ScanReport) -> None:
        try:
            members = list(vars(module).items())
        except Exception as exc:
            raise ModuleInspectionError(name, [(None, exc)]) from exc

        module_name = getattr(module, "__name__", name)
        errors: List[Tuple[Optional[str], BaseException]] = []
        seen: Set[int] = set()
        for attr, obj in members:
            if id(obj) in seen:
                continue
            try:
                # lazy proxies can raise anything from attribute access
                if getattr(obj, "__module__", None) != module_name:
                    continue
                is_class = inspect.isclass(obj)
                is_function = not is_class and inspect.isfunction(obj)
            except Exception as exc:
                self._log_inspection_error(name, attr, exc)
                errors.append((attr, exc))
                continue
            if is_class:
                seen.add(id(obj))
                self._scan_type(name, obj, report, errors, seen)
            elif is_function:
                seen.add(id(obj))
                marker = get_marker(obj)
                if marker is not None:
                    self._record(report, Finding(name, MemberKind.FUNCTION, None, obj.__name__, marker))

        if errors:
            raise ModuleInspectionError(name, errors)

    def _scan_type(
        self,
        module: str,
        cls: type,
        report: ScanReport,
        errors: List[Tuple[Optional[str], BaseException]],
        seen: Set[int],
    ) -> None:
        type_name = getattr(cls, "__qualname__", cls.__name__)
        nested: List[type] = []
        try:
            marker = get_marker(cls)
            if marker is not None:
                self._record(report, Finding(module, MemberKind.CLASS, type_name, None, marker))

            methods = []
            properties = []
            for attr, member in iter_declared(cls):
                if attr in CONSTRUCTOR_NAMES:
                    continue
                func = unwrap_function(member)
                if is_property(member):
                    properties.append((attr, member))
                elif func is not None:
                    methods.append((attr, func))
                elif is_nested_class(cls, attr, member) and id(member) not in seen:
                    seen.add(id(member))
                    nested.append(member)

            # one finding per marked function, even when the same function
            # also backs a property or a constructor in this class body
            reported: Set[int] = set()
            for attr, func in methods:
                marker = get_marker(func)
                if marker is not None and id(func) not in reported:
                    reported.add(id(func))
                    self._record(report, Finding(module, MemberKind.METHOD, type_name, attr, marker))

            for attr, prop in properties:
                accessor = marked_accessor(prop)
                if accessor is not None and id(accessor) not in reported:
                    reported.add(id(accessor))
                    self._record(report, Finding(module, MemberKind.PROPERTY, type_name, attr, get_marker(accessor)))

            for attr, hint in own_annotations(cls).items():
                marker = annotation_marker(hint)
                if marker is not None:
                    self._record(report, Finding(module, MemberKind.FIELD, type_name, attr, marker))

            namespace = vars(cls)
            for attr in CONSTRUCTOR_NAMES:
                func = unwrap_function(namespace.get(attr))
                marker = get_marker(func) if func is not None else None
                if marker is not None and id(func) not in reported:
                    reported.add(id(func))
                    self._record(report, Finding(module, MemberKind.CONSTRUCTOR, type_name, attr, marker))
        except Exception as exc:
            self._log_inspection_error(module, type_name, exc)
            errors.append((type_name, exc))

        for inner in nested:
            self._scan_type(module, inner, report, errors, seen)

    def _log_inspection_error(self, module: str, location: str, exc: Exception) -> None:
        if self.verbose:
            self.logger.exception("Failed while inspecting %s.%s", module, location)
        else:
            self.logger.warning("Failed while inspecting %s.%s: %s", module, location, exc)

    def _record(self, report: ScanReport, finding: Finding) -> None:
        report.findings.append(finding)
        self.logger.debug("Found %s in %s", finding.location_label, finding.module)
        self.reporter.finding(finding)

    def _report_failure(self, exc: ModuleInspectionError, report: ScanReport) -> None:
        failure = exc.to_failure()
        report.failures.append(failure)
        self.logger.warning("Could not scan %s: %s", failure.module, failure.reason)
        self.reporter.module_failure(failure)
