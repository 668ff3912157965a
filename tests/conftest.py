import sys
import textwrap
import uuid
from pathlib import Path

import pytest


def unique_name(prefix: str = "sample") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}"


@pytest.fixture()
def make_module(tmp_path: Path):
    """
    Write a throwaway module under tmp_path and return its path.
    Module names are random so sys.modules never hands back a stale copy.
    """
    created = []

    def _make(source: str, name: str = None) -> Path:
        name = name or unique_name()
        path = tmp_path / f"{name}.py"
        path.write_text(textwrap.dedent(source))
        created.append(name)
        return path

    yield _make
    for name in created:
        sys.modules.pop(name, None)


@pytest.fixture()
def make_package(tmp_path: Path):
    """
    Build a package directory from a {relative_path: source} mapping.
    """
    created = []

    def _make(files: dict, name: str = None) -> Path:
        name = name or unique_name("pkg")
        root = tmp_path / name
        root.mkdir()
        (root / "__init__.py").write_text("")
        for rel, source in files.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(textwrap.dedent(source))
        created.append(name)
        return root

    yield _make
    for name in created:
        for mod in [m for m in sys.modules if m == name or m.startswith(name + ".")]:
            sys.modules.pop(mod, None)
