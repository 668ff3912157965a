from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..marker import Todo


class MemberKind(Enum):
    CLASS = "CLASS"
    METHOD = "METHOD"
    PROPERTY = "PROPERTY"
    FIELD = "FIELD"
    CONSTRUCTOR = "CONSTRUCTOR"
    FUNCTION = "FUNCTION"


CONSTRUCTOR_NAME = "ctor"


@dataclass
class Finding:
    module: str
    kind: MemberKind
    type_name: Optional[str]  # None for module-level functions
    member_name: Optional[str]  # None for class-level markers
    marker: Todo

    @property
    def location_label(self) -> str:
        if self.kind is MemberKind.CLASS:
            return f"[CLASS] {self.type_name}"
        if self.kind is MemberKind.FUNCTION:
            return f"[FUNCTION] {self.member_name}"
        if self.kind is MemberKind.CONSTRUCTOR:
            return f"[CONSTRUCTOR] {self.type_name}.{CONSTRUCTOR_NAME}"
        return f"[{self.kind.value}] {self.type_name}.{self.member_name}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "module": self.module,
            "kind": self.kind.value,
            "location": self.location_label,
        }
        for f in fields(self.marker):
            data[f.name] = getattr(self.marker, f.name)
        return data


@dataclass
class ModuleFailure:
    module: str
    reason: str
    details: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"module": self.module, "reason": self.reason, "details": list(self.details)}


class ModuleInspectionError(Exception):
    """A module could not be imported or fully inspected.

    ``causes`` holds ``(location, exception)`` pairs; ``location`` is the
    qualified type name for per-type failures and ``None`` when the module as
    a whole failed.
    """

    def __init__(self, module: str, causes: Sequence[tuple]) -> None:
        self.module = module
        self.causes = list(causes)
        super().__init__(self.summary())

    def summary(self) -> str:
        if len(self.causes) == 1 and self.causes[0][0] is None:
            return _describe(self.causes[0][1])
        return f"{len(self.causes)} type(s) failed to load"

    def to_failure(self) -> ModuleFailure:
        details = [
            _describe(exc) if location is None else f"{location}: {_describe(exc)}"
            for location, exc in self.causes
        ]
        if len(details) == 1 and self.causes[0][0] is None:
            details = []
        return ModuleFailure(module=self.module, reason=self.summary(), details=details)


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


@dataclass
class ScanReport:
    findings: List[Finding] = field(default_factory=list)
    failures: List[ModuleFailure] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.findings)

    @property
    def passed(self) -> bool:
        return self.total_count == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total_count,
            "passed": self.passed,
            "modules": list(self.modules),
            "findings": [f.to_dict() for f in self.findings],
            "failures": [f.to_dict() for f in self.failures],
        }
