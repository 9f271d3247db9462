from __future__ import annotations

from pathlib import Path

import pytest

from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.output.console import MockConsole
from capsule_ci.pipeline import publish as publish_mod
from capsule_ci.pipeline.model import Artifact
from capsule_ci.pipeline.publish import ReleasePublisher
from capsule_ci.platform.detection import RunnerPlatform
from capsule_ci.platform.process import ProcessError

REF = "refs/tags/v1.2.3"
TOKEN_ENV = {"GITHUB_TOKEN": "t", "GITHUB_REPOSITORY": "capsule/capsule"}


def _err(*, stderr: str, returncode: int = 1) -> Err[ProcessError]:
    return Err(ProcessError(command=("gh",), returncode=returncode, stdout="", stderr=stderr))


def _no_sleep(seconds: float) -> None:
    del seconds


def _artifact(tmp_path: Path) -> Artifact:
    path = tmp_path / "capsule-cli-ubuntu-latest-1.2.3.tar.gz"
    path.write_bytes(b"archive")
    return Artifact(path=path, binary_name="capsule", platform=RunnerPlatform("ubuntu-latest"))


def _install_gh(
    monkeypatch: pytest.MonkeyPatch,
    responses: dict[str, list[Result[str, ProcessError]]],
) -> list[list[str]]:
    """Fake `gh`: responses are keyed by subcommand (`view`, `create`, `upload`)."""
    calls: list[list[str]] = []

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd
        del timeout
        calls.append(cmd)
        queue = responses.get(cmd[2], [])
        return queue.pop(0) if queue else Ok("")

    monkeypatch.setattr(publish_mod, "run_process", fake_run)
    monkeypatch.setattr(publish_mod, "sleep", _no_sleep)
    monkeypatch.setattr(publish_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
    return calls


def _publisher(tmp_path: Path, console: MockConsole, **kwargs: object) -> ReleasePublisher:
    return ReleasePublisher(
        project_root=tmp_path,
        console=console,
        environ=TOKEN_ENV,
        **kwargs,  # type: ignore[arg-type]
    )


def test_publish_uploads_to_existing_release(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls = _install_gh(monkeypatch, {"view": [Ok('{"tagName": "v1.2.3"}')]})
    console = MockConsole()

    result = _publisher(tmp_path, console).publish(REF, _artifact(tmp_path))

    assert result == Ok("capsule-cli-ubuntu-latest-1.2.3.tar.gz")
    assert [c[2] for c in calls] == ["view", "upload"]
    upload = calls[-1]
    assert upload[:4] == ["gh", "release", "upload", "v1.2.3"]
    assert "--clobber" not in upload
    assert upload[-2:] == ["--repo", "capsule/capsule"]
    assert console.has_success()


def test_publish_creates_missing_release(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _install_gh(monkeypatch, {"view": [_err(stderr="release not found")]})

    result = _publisher(tmp_path, MockConsole()).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Ok)
    assert [c[2] for c in calls] == ["view", "create", "upload"]
    assert "--verify-tag" in calls[1]


def test_concurrent_release_creation_is_tolerated(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _install_gh(
        monkeypatch,
        {
            "view": [_err(stderr="release not found")],
            "create": [_err(stderr="a release with the same tag name already exists")],
        },
    )

    result = _publisher(tmp_path, MockConsole()).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Ok)


def test_duplicate_asset_fails_fast(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _install_gh(
        monkeypatch,
        {"upload": [_err(stderr="asset under the same name already exists")]},
    )

    result = _publisher(tmp_path, MockConsole()).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Err)
    assert result.error.kind == "asset_exists"
    assert result.error.hint is not None
    assert "--clobber" in result.error.hint
    assert sum(1 for c in calls if c[2] == "upload") == 1


def test_clobber_overwrites(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _install_gh(monkeypatch, {})

    result = _publisher(tmp_path, MockConsole(), clobber=True).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Ok)
    assert "--clobber" in calls[-1]


def test_upload_failure_is_not_retried(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _install_gh(monkeypatch, {"upload": [_err(stderr="HTTP 503 Service Unavailable")]})

    result = _publisher(tmp_path, MockConsole()).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Err)
    assert result.error.kind == "upload_failed"
    assert sum(1 for c in calls if c[2] == "upload") == 1


def test_release_view_retries_transient_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls = _install_gh(
        monkeypatch,
        {"view": [_err(stderr="HTTP 502 Bad Gateway"), Ok('{"tagName": "v1.2.3"}')]},
    )

    result = _publisher(tmp_path, MockConsole()).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Ok)
    assert [c[2] for c in calls] == ["view", "view", "upload"]


def test_release_view_non_transient_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls = _install_gh(monkeypatch, {"view": [_err(stderr="HTTP 403 Forbidden")]})

    result = _publisher(tmp_path, MockConsole()).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Err)
    assert result.error.kind == "upload_failed"
    assert len(calls) == 1


def test_gh_missing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(publish_mod.shutil, "which", lambda name: None)

    result = _publisher(tmp_path, MockConsole()).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Err)
    assert result.error.kind == "gh_missing"


def test_auth_required_without_token(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _install_gh(monkeypatch, {"status": [_err(stderr="not logged in")]})
    publisher = ReleasePublisher(project_root=tmp_path, console=MockConsole(), environ={})

    result = publisher.publish(REF, _artifact(tmp_path))

    assert isinstance(result, Err)
    assert result.error.kind == "auth_required"
    assert calls == [["gh", "auth", "status"]]


def test_dry_run_runs_nothing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _install_gh(monkeypatch, {})
    console = MockConsole()

    result = _publisher(tmp_path, console, dry_run=True).publish(REF, _artifact(tmp_path))

    assert isinstance(result, Ok)
    assert calls == []
    assert console.find("gh release upload v1.2.3")
