"""Tests for release packaging."""

from __future__ import annotations

import tarfile
from pathlib import Path

import pytest

from capsule_ci.core.result import Err, Ok
from capsule_ci.output.console import MockConsole
from capsule_ci.pipeline.errors import PackageStateError
from capsule_ci.pipeline.packaging import PackageState, Packager, archive_name, package
from capsule_ci.platform.detection import OsFamily, RunnerPlatform

WINDOWS = RunnerPlatform("windows-latest")
UBUNTU = RunnerPlatform("ubuntu-latest")
MACOS = RunnerPlatform("macos-latest")


def _binary(release_dir: Path, name: str) -> Path:
    release_dir.mkdir(parents=True, exist_ok=True)
    path = release_dir / name
    path.write_bytes(b"\x7fELF fake binary")
    return path


class TestNames:
    def test_windows_archive(self) -> None:
        assert archive_name("capsule", WINDOWS, "1.2.3") == (
            "capsule-cli-windows-latest-1.2.3.tar.gz"
        )

    def test_ubuntu_archive(self) -> None:
        assert archive_name("capsule", UBUNTU, "0.4.0") == "capsule-cli-ubuntu-latest-0.4.0.tar.gz"

    def test_names_are_distinct_across_platforms_and_versions(self) -> None:
        names = {
            archive_name("capsule", p, v)
            for p in (WINDOWS, UBUNTU, MACOS)
            for v in ("1.0.0", "1.0.1")
        }
        assert len(names) == 6


class TestPackage:
    def test_windows_contains_exe(self, tmp_path: Path) -> None:
        _binary(tmp_path, "capsule.exe")

        result = package(
            tool="capsule",
            platform=WINDOWS,
            version_tag="1.2.3",
            release_dir=tmp_path,
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        artifact = result.value
        assert artifact.name == "capsule-cli-windows-latest-1.2.3.tar.gz"
        assert artifact.binary_name == "capsule.exe"
        with tarfile.open(artifact.path, "r:gz") as tar:
            assert tar.getnames() == ["capsule.exe"]

    def test_ubuntu_contains_bare_binary(self, tmp_path: Path) -> None:
        _binary(tmp_path, "capsule")

        result = package(
            tool="capsule",
            platform=UBUNTU,
            version_tag="0.4.0",
            release_dir=tmp_path,
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        assert result.value.path == tmp_path / "capsule-cli-ubuntu-latest-0.4.0.tar.gz"
        with tarfile.open(result.value.path, "r:gz") as tar:
            members = tar.getmembers()
        assert [m.name for m in members] == ["capsule"]
        assert members[0].isfile()

    def test_out_dir(self, tmp_path: Path) -> None:
        release_dir = tmp_path / "release"
        _binary(release_dir, "capsule")
        out = tmp_path / "dist"

        result = package(
            tool="capsule",
            platform=MACOS,
            version_tag="1.0.0",
            release_dir=release_dir,
            console=MockConsole(),
            out_dir=out,
        )

        assert isinstance(result, Ok)
        assert result.value.path.parent == out
        assert result.value.path.is_file()
        assert not list(out.glob("*.tmp"))

    def test_missing_binary(self, tmp_path: Path) -> None:
        # A posix binary does not satisfy a Windows package.
        _binary(tmp_path, "capsule")

        result = package(
            tool="capsule",
            platform=WINDOWS,
            version_tag="1.2.3",
            release_dir=tmp_path,
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.path == tmp_path / "capsule.exe"
        assert not (tmp_path / "capsule-cli-windows-latest-1.2.3.tar.gz").exists()

    def test_dry_run_writes_nothing(self, tmp_path: Path) -> None:
        console = MockConsole()

        result = package(
            tool="capsule",
            platform=UBUNTU,
            version_tag="1.0.0",
            release_dir=tmp_path,
            console=console,
            dry_run=True,
        )

        assert isinstance(result, Ok)
        assert not result.value.path.exists()
        assert console.find("tar -czf")


class TestStateMachine:
    def test_transitions(self, tmp_path: Path) -> None:
        _binary(tmp_path, "capsule")
        packager = Packager(tool="capsule", version_tag="1.0.0", console=MockConsole())
        assert packager.state is PackageState.NOT_PACKAGED

        assert packager.select_platform(UBUNTU) == "capsule"
        assert packager.state is PackageState.PLATFORM_SELECTED

        result = packager.archive(tmp_path)
        assert isinstance(result, Ok)
        assert packager.state is PackageState.ARCHIVED
        assert packager.artifact == result.value

    def test_archive_before_select(self, tmp_path: Path) -> None:
        packager = Packager(tool="capsule", version_tag="1.0.0", console=MockConsole())
        with pytest.raises(PackageStateError):
            packager.archive(tmp_path)

    def test_select_twice(self) -> None:
        packager = Packager(tool="capsule", version_tag="1.0.0", console=MockConsole())
        packager.select_platform(UBUNTU)
        with pytest.raises(PackageStateError):
            packager.select_platform(WINDOWS)

    def test_failed_archive_stays_selected(self, tmp_path: Path) -> None:
        packager = Packager(tool="capsule", version_tag="1.0.0", console=MockConsole())
        packager.select_platform(UBUNTU)

        assert isinstance(packager.archive(tmp_path), Err)
        assert packager.state is PackageState.PLATFORM_SELECTED
        assert packager.artifact is None

    def test_binary_name_follows_family(self) -> None:
        packager = Packager(tool="capsule", version_tag="1.0.0", console=MockConsole())
        assert packager.select_platform(WINDOWS) == OsFamily.WINDOWS.exe_name("capsule")
