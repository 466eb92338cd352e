"""Tests for the chdfs-doctor CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from chdfs import doctor

URI = "ofs://f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com/"


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the CLI from reconfiguring the root logger under pytest."""
    monkeypatch.setattr(doctor, "setup_logging", lambda **kwargs: None)


def _write_config(tmp_path: Path, cache_dir: Path, **extra: Any) -> Path:
    lines = ["fs.ofs.user.appid: 1250000000", f"fs.ofs.tmp.cache.dir: {cache_dir}"]
    lines.extend(f"{key}: {value}" for key, value in extra.items())
    config_file = tmp_path / "ofs.yaml"
    config_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return config_file


def test_all_checks_pass(tmp_path: Path, cache_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_file = _write_config(tmp_path, cache_dir)
    assert doctor.main([URI, "--config", str(config_file)]) == 0
    out = capsys.readouterr().out
    assert "ok   address: f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com" in out
    assert "ok   config: appid=1250000000 port=443 tls=True" in out
    assert "(created)" in out
    assert "ok   backend: local" in out
    assert "connect" not in out


def test_connect(tmp_path: Path, cache_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_file = _write_config(tmp_path, cache_dir)
    assert doctor.main([URI, "--config", str(config_file), "--connect"]) == 0
    assert "ok   connect: ofs://f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com" in capsys.readouterr().out


def test_set_overrides(cache_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    args = [
        URI,
        "--set", "fs.ofs.user.appid=7",
        "--set", f"fs.ofs.tmp.cache.dir={cache_dir}",
        "--set", "fs.ofs.meta.server.port=0x20FB",
    ]
    assert doctor.main(args) == 0
    assert "appid=7 port=8443" in capsys.readouterr().out


def test_invalid_address(capsys: pytest.CaptureFixture[str]) -> None:
    assert doctor.main(["ofs://bad_host/", "--set", "fs.ofs.user.appid=1"]) == 1
    assert "FAIL address" in capsys.readouterr().out


def test_config_failures_are_all_listed(capsys: pytest.CaptureFixture[str]) -> None:
    assert doctor.main([URI]) == 1
    out = capsys.readouterr().out
    assert "fs.ofs.user.appid" in out
    assert "fs.ofs.tmp.cache.dir" in out
    assert out.count("FAIL config") == 2


def test_unusable_cache_dir(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    args = [URI, "--set", "fs.ofs.user.appid=1", "--set", f"fs.ofs.tmp.cache.dir={blocker}"]
    assert doctor.main(args) == 1
    assert "FAIL cache dir" in capsys.readouterr().out


def test_unknown_backend(cache_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    args = [
        URI,
        "--set", "fs.ofs.user.appid=1",
        "--set", f"fs.ofs.tmp.cache.dir={cache_dir}",
        "--set", "fs.ofs.backend.impl=hdfs",
    ]
    assert doctor.main(args) == 1
    assert "FAIL backend" in capsys.readouterr().out


def test_unreadable_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert doctor.main([URI, "--config", str(tmp_path / "missing.yaml")]) == 2
    assert "cannot be read" in capsys.readouterr().out


def test_malformed_set(capsys: pytest.CaptureFixture[str]) -> None:
    assert doctor.main([URI, "--set", "no-equals-sign"]) == 2
    assert "expects KEY=VALUE" in capsys.readouterr().out
