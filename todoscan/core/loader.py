from __future__ import annotations
import contextlib
import importlib
import importlib.util
import logging
import pkgutil
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .models import ModuleInspectionError

OWN_PACKAGE = __name__.split(".")[0]

# matched as whole dotted segments: "pip" hides "pip._internal", not "pipeline"
DEFAULT_EXCLUDED_PACKAGES = (
    "builtins",
    "pip",
    "setuptools",
    "pkg_resources",
    "wheel",
    "pytest",
    "_pytest",
    "pluggy",
    "tqdm",
    "typing_extensions",
    "importlib_metadata",
    "site",
    "sitecustomize",
    "usercustomize",
    "distutils",
    "_distutils_hack",
    "_virtualenv",
)

# matched as raw prefixes: __main__ and the __editable__ import hooks
DEFAULT_EXCLUDED_PREFIXES = ("__",)

logger = logging.getLogger(f"{OWN_PACKAGE}.loader")


class TargetError(Exception):
    """An explicit scan target does not name anything importable."""


@dataclass
class ModuleUnit:
    name: str
    module: Optional[ModuleType] = None
    error: Optional[ModuleInspectionError] = None


class ModuleFilter:
    """Decides which module names are platform/framework code and get skipped.

    Everything matches case-insensitively. Built-in tooling packages and the
    scanner's own package match on whole dotted segments, standard library
    modules on their exact top-level name, so neither ``os`` hides ``osmnx``
    nor ``pip`` hides ``pipeline``. User-supplied prefixes are raw prefixes.
    """

    def __init__(self, extra_prefixes: Iterable[str] = (), *, include_defaults: bool = True) -> None:
        packages = [OWN_PACKAGE]
        prefixes: List[str] = []
        if include_defaults:
            packages.extend(DEFAULT_EXCLUDED_PACKAGES)
            prefixes.extend(DEFAULT_EXCLUDED_PREFIXES)
        prefixes.extend(p for p in extra_prefixes if p)
        self.packages = frozenset(p.lower() for p in packages)
        self.prefixes = tuple(p.lower() for p in prefixes)
        self.stdlib = frozenset(getattr(sys, "stdlib_module_names", ()))

    def is_excluded(self, name: str) -> bool:
        if name.split(".")[0] in self.stdlib:
            return True
        lowered = name.lower()
        parts = lowered.split(".")
        if any(".".join(parts[:i]) in self.packages for i in range(1, len(parts) + 1)):
            return True
        return bool(self.prefixes) and lowered.startswith(self.prefixes)


def loaded_modules(module_filter: Optional[ModuleFilter] = None) -> List[ModuleUnit]:
    """Every module already imported in this process, in load order."""

    module_filter = module_filter or ModuleFilter()
    units = []
    for name, module in list(sys.modules.items()):
        if module is None or module_filter.is_excluded(name):
            continue
        units.append(ModuleUnit(name=name, module=module))
    return units


def collect_modules(targets: Sequence[str], module_filter: Optional[ModuleFilter] = None) -> List[ModuleUnit]:
    """Import the given module names, files or directories.

    Packages are walked recursively. Import failures become units carrying a
    ``ModuleInspectionError`` so the scan can report them and move on; a
    target that is neither an existing path nor a valid module name raises
    ``TargetError``.
    """

    module_filter = module_filter or ModuleFilter()
    importlib.invalidate_caches()
    units: Dict[str, ModuleUnit] = {}
    for target in targets:
        for unit in _resolve_target(target, module_filter):
            units.setdefault(unit.name, unit)
    return list(units.values())


def _resolve_target(target: str, module_filter: ModuleFilter) -> Iterator[ModuleUnit]:
    path = Path(target)
    if path.suffix == ".py" or path.exists():
        if not path.exists():
            raise TargetError(f"No such file or directory: {target}")
        yield from _resolve_path(path.resolve(), module_filter)
        return
    if not all(part.isidentifier() for part in target.split(".")):
        raise TargetError(f"Not a module name or existing path: {target}")
    if not _module_exists(target):
        raise TargetError(f"No module named {target!r}")
    yield from _import_tree(target, module_filter)


def _module_exists(name: str) -> bool:
    """Whether ``name`` can be located at all.

    A missing module (or missing parent package) is a bad target. A parent
    package that exists but fails while importing is left to the import step,
    which records it as a recoverable module failure.
    """

    try:
        return importlib.util.find_spec(name) is not None
    except ModuleNotFoundError as exc:
        missing = exc.name or ""
        if missing and (name == missing or name.startswith(missing + ".")):
            return False
        return True
    except Exception:
        logger.debug("Locating %s failed", name, exc_info=True)
        return True


def _resolve_path(path: Path, module_filter: ModuleFilter) -> Iterator[ModuleUnit]:
    if path.is_file():
        root, name = _package_root(path.parent), path.stem
        prefix = _dotted(path.parent, root)
        dotted = f"{prefix}.{name}" if prefix else name
        if name == "__init__":
            dotted = prefix
        if not dotted:
            raise TargetError(f"Cannot derive a module name for {path}")
        with _prepend_sys_path(root):
            yield from _import_tree(dotted, module_filter)
        return
    if (path / "__init__.py").exists():
        root = _package_root(path)
        with _prepend_sys_path(root):
            yield from _import_tree(_dotted(path, root), module_filter)
        return
    with _prepend_sys_path(path):
        for info in pkgutil.iter_modules([str(path)]):
            yield from _import_tree(info.name, module_filter)


def _package_root(directory: Path) -> Path:
    """The directory to put on sys.path so ``directory`` imports by its dotted name."""

    root = directory
    while (root / "__init__.py").exists() and root.parent != root:
        root = root.parent
    return root


def _dotted(directory: Path, root: Path) -> str:
    return ".".join(directory.relative_to(root).parts)


@contextlib.contextmanager
def _prepend_sys_path(entry: Path) -> Iterator[None]:
    text = str(entry)
    added = text not in sys.path
    if added:
        sys.path.insert(0, text)
    try:
        yield
    finally:
        if added and text in sys.path:
            sys.path.remove(text)


def _import_tree(name: str, module_filter: ModuleFilter) -> Iterator[ModuleUnit]:
    if module_filter.is_excluded(name):
        logger.info("Skipping excluded module %s", name)
        return
    unit = _import_unit(name)
    yield unit
    module = unit.module
    if module is None or not hasattr(module, "__path__"):
        return

    # a broken subpackage is yielded (and its error captured) before the
    # walker retries the import, so the walker's own failure is only logged
    def onerror(pkg_name: str) -> None:
        logger.debug("Not descending into %s", pkg_name)

    for info in pkgutil.walk_packages(module.__path__, prefix=f"{name}.", onerror=onerror):
        if module_filter.is_excluded(info.name):
            continue
        yield _import_unit(info.name)


def _import_unit(name: str) -> ModuleUnit:
    try:
        return ModuleUnit(name=name, module=importlib.import_module(name))
    except Exception as exc:
        logger.debug("Import of %s failed", name, exc_info=True)
        return ModuleUnit(name=name, error=ModuleInspectionError(name, [(None, exc)]))
