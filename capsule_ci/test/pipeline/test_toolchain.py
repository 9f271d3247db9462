from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import pytest

from capsule_ci.core.result import Err, Ok
from capsule_ci.output.console import MockConsole
from capsule_ci.pipeline import toolchain as toolchain_mod
from capsule_ci.pipeline.errors import ProvisionFailed, ToolMissing
from capsule_ci.pipeline.toolchain import ToolchainProvisioner
from capsule_ci.platform.process import ProcessError


def _provisioner(tmp_path: Path, console: MockConsole, **kwargs: bool) -> ToolchainProvisioner:
    return ToolchainProvisioner(project_root=tmp_path, channel="nightly", console=console, **kwargs)


def test_commands_pin_the_channel(tmp_path: Path) -> None:
    commands = _provisioner(tmp_path, MockConsole()).commands()
    assert commands == [
        ["rustup", "toolchain", "install", "nightly", "--profile", "minimal"],
        ["rustup", "override", "set", "nightly"],
    ]


def test_provision(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    ran: list[list[str]] = []

    def fake_silent(
        cmd: list[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ):
        del cwd, env, timeout
        ran.append(cmd)
        return Ok(None)

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        assert cmd == ["rustc", "--version"]
        return Ok("rustc 1.80.0-nightly (abc 2024-05-01)\n")

    monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(toolchain_mod, "run_silent", fake_silent)
    monkeypatch.setattr(toolchain_mod, "run_process", fake_run)
    console = MockConsole()

    result = _provisioner(tmp_path, console).provision()

    assert result == Ok("rustc 1.80.0-nightly (abc 2024-05-01)")
    assert [c[1] for c in ran] == ["toolchain", "override"]
    assert console.find("rustc 1.80.0-nightly")


def test_install_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_silent(cmd: list[str], **kwargs: object):
        del kwargs
        return Err(ProcessError(tuple(cmd), 1, "", "error: toolchain 'nightly' is not installable"))

    monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(toolchain_mod, "run_silent", fake_silent)

    result = _provisioner(tmp_path, MockConsole()).provision()

    assert isinstance(result, Err)
    assert isinstance(result.error, ProvisionFailed)
    assert result.error.channel == "nightly"
    assert result.error.hint is not None
    assert "not installable" in result.error.hint


def test_rustup_missing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: None)

    result = _provisioner(tmp_path, MockConsole()).provision()

    assert isinstance(result, Err)
    assert isinstance(result.error, ToolMissing)
    assert result.error.tool == "rustup"


def test_dry_run(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: None)
    console = MockConsole()

    result = _provisioner(tmp_path, console, dry_run=True).provision()

    assert result == Ok(None)
    assert console.messages == [
        "rustup toolchain install nightly --profile minimal",
        "rustup override set nightly",
    ]
