"""
Integration tests for the fieldgroups command line.

Registration and composition run in separate Python processes that share only
the registry database file, the way parallel build steps would.
"""
from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

from fieldgroups.cli import main

SAMPLES = Path(__file__).parent.parent / "samples"


def run_cli(*args: str, cwd: Path) -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env.pop("FIELDGROUPS_STORE", None)
    return subprocess.run(
        [sys.executable, "-m", "fieldgroups.cli", *args],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )


@pytest.fixture
def store_path(tmp_path: Path) -> str:
    return str(tmp_path / "registry.db")


def test_register_and_compose_in_separate_processes(tmp_path, store_path):
    first = run_cli("transform", str(SAMPLES / "names.py"), "--store", store_path, cwd=tmp_path)
    assert first.returncode == 0, first.stderr

    second = run_cli("transform", str(SAMPLES / "people.py"), "--store", store_path, cwd=tmp_path)
    assert second.returncode == 0, second.stderr
    assert "firstname: str" in second.stdout
    assert "middlename: str" in second.stdout
    assert "@reuse" not in second.stdout


def test_missing_registration_is_a_hard_failure(tmp_path, store_path):
    result = run_cli("transform", str(SAMPLES / "people.py"), "--store", store_path, cwd=tmp_path)
    assert result.returncode == 1
    assert "test_name" in result.stderr
    assert result.stdout == ""


def test_parallel_registrations_from_many_processes(tmp_path, store_path):
    sources = []
    for i in range(6):
        path = tmp_path / f"group_{i}.py"
        path.write_text(
            "from fieldgroups import reusable\n\n\n"
            f"@reusable('group_{i}')\n"
            f"class Group{i}:\n"
            f"    field_{i}: int = {i}\n"
        )
        sources.append(path)

    # Create the database once so the workers only race on rows.
    assert run_cli("list", "--store", store_path, cwd=tmp_path).returncode == 0

    procs = [
        subprocess.Popen(
            [sys.executable, "-m", "fieldgroups.cli", "transform", str(p), "--store", store_path],
            cwd=tmp_path,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
        for p in sources
    ]
    for proc in procs:
        _, stderr = proc.communicate(timeout=60)
        assert proc.returncode == 0, stderr

    listing = run_cli("list", "--store", store_path, cwd=tmp_path)
    assert listing.returncode == 0, listing.stderr
    for i in range(6):
        assert f"group_{i}" in listing.stdout


def test_build_orders_files_and_writes_output(tmp_path, store_path, capsys):
    out_dir = tmp_path / "generated"
    code = main([
        "build",
        str(SAMPLES / "people.py"),
        str(SAMPLES / "names.py"),
        "--out-dir", str(out_dir),
        "--store", store_path,
    ])
    assert code == 0
    assert (out_dir / "people.py").exists()
    assert (out_dir / "names.py").exists()

    output = capsys.readouterr().out
    assert "test_name" in output
    assert "Fullname" in output


def test_show_prints_the_registered_class(tmp_path, store_path, capsys):
    assert main(["transform", str(SAMPLES / "names.py"), "--store", store_path]) == 0
    capsys.readouterr()

    assert main(["show", "test_name", "--store", store_path]) == 0
    shown = capsys.readouterr().out
    assert "class Name:" in shown
    assert "surname: str" in shown


def test_show_unknown_key_reports_error(store_path, capsys):
    assert main(["show", "nobody.home", "--store", store_path]) == 1
    assert "nobody.home" in capsys.readouterr().err


def test_strict_flag_rejects_cross_group_duplicates(tmp_path, store_path, capsys):
    source = tmp_path / "dupes.py"
    source.write_text(
        "from fieldgroups import reusable, reuse\n\n\n"
        "@reusable('left')\nclass Left:\n    x: int\n\n\n"
        "@reusable('right')\nclass Right:\n    x: str\n\n\n"
        "@reuse('left', 'right')\nclass Both:\n    pass\n"
    )
    assert main(["transform", str(source), "--store", store_path]) == 0
    capsys.readouterr()

    assert main(["transform", str(source), "--store", store_path, "--strict"]) == 1
    assert "'x'" in capsys.readouterr().err


def test_unknown_log_level_is_reported_not_raised(store_path, monkeypatch, capsys):
    monkeypatch.setenv("FIELDGROUPS_LOG_LEVEL", "verbose")
    assert main(["list", "--store", store_path]) == 1
    err = capsys.readouterr().err
    assert err.startswith("error: ")
    assert "'verbose'" in err


def test_malformed_pyproject_is_reported_not_raised(tmp_path, store_path, monkeypatch, capsys):
    monkeypatch.delenv("FIELDGROUPS_LOG_LEVEL", raising=False)
    (tmp_path / "pyproject.toml").write_text("[tool.fieldgroups\nstore = \n")
    monkeypatch.chdir(tmp_path)
    assert main(["list", "--store", store_path]) == 1
    err = capsys.readouterr().err
    assert err.startswith("error: ")
    assert "pyproject.toml" in err
