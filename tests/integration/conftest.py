import os
import sys
import subprocess
import textwrap
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]


def _run_cli(args, cwd=None, env=None, timeout=60):
    """
    Run the CLI as a subprocess: python -m todoscan.cli <args>
    Returns CompletedProcess with stdout/stderr text captured.
    """
    cmd = [sys.executable, "-m", "todoscan.cli"] + list(map(str, args))
    env = dict(env or os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in (str(REPO_ROOT), env.get("PYTHONPATH")) if p)
    return subprocess.run(cmd, cwd=cwd, env=env, capture_output=True, text=True, timeout=timeout)


@pytest.fixture()
def run_cli():
    return _run_cli


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    """
    A small application package: one clean module, one with markers.
    """
    root = tmp_path / "project"
    pkg = root / "shopapp"
    pkg.mkdir(parents=True)
    (pkg / "__init__.py").write_text("")
    (pkg / "clean.py").write_text(textwrap.dedent(
        """
        class Cart:
            def total(self):
                return 0
        """
    ))
    (pkg / "orders.py").write_text(textwrap.dedent(
        """
        from typing import Annotated
        from todoscan.marker import Todo

        @Todo("split into aggregate and repository", owner="payments")
        class Order:
            status: Annotated[str, Todo("use an enum", owner="")]

            @Todo("validate totals", priority=0)
            def __init__(self):
                self.status = "new"

            @Todo("refunds")
            def refund(self):
                raise NotImplementedError
        """
    ))
    return root


@pytest.fixture()
def out_dir(tmp_path: Path) -> Path:
    d = tmp_path / "out"
    d.mkdir(parents=True, exist_ok=True)
    return d
