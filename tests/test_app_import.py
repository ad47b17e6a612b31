"""Import-order checks for the application packages."""

from __future__ import annotations

import os
import subprocess
import sys

import pytest

import _bootstrap


@pytest.mark.parametrize(
    "statement",
    [
        "import app.main",
        "import app.clients",
        "import app.services",
        "import app.clients.sqlite_store",
        "import app.services.google_tokens",
        "from scripts import link_credentials",
    ],
)
def test_modules_import_in_fresh_interpreter(statement: str) -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(_bootstrap.PROJECT_ROOT), env.get("PYTHONPATH")])
    )

    result = subprocess.run(
        [sys.executable, "-c", statement],
        cwd=_bootstrap.PROJECT_ROOT,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert result.returncode == 0, result.stderr
