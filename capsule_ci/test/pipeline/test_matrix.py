from __future__ import annotations

import json

from capsule_ci.core.config import Config, MatrixConfig
from capsule_ci.core.result import Err, Ok
from capsule_ci.pipeline.matrix import github_matrix, plan_run, platforms_for, select_platforms
from capsule_ci.pipeline.model import Event, Pipeline
from capsule_ci.platform.detection import RunnerPlatform

CONFIG = Config()
ALL = ("macos-latest", "ubuntu-latest", "windows-latest")


def _ids(platforms: tuple[RunnerPlatform, ...]) -> tuple[str, ...]:
    return tuple(p.id for p in platforms)


class TestPlatformsFor:
    def test_ci_and_release_use_full_matrix(self) -> None:
        assert _ids(platforms_for(Pipeline.CI, CONFIG)) == ALL
        assert _ids(platforms_for(Pipeline.RELEASE, CONFIG)) == ALL

    def test_coverage_uses_linux_only(self) -> None:
        assert _ids(platforms_for(Pipeline.COVERAGE, CONFIG)) == ("ubuntu-latest",)


def test_github_matrix() -> None:
    data = json.loads(github_matrix(platforms_for(Pipeline.CI, CONFIG)))
    assert data == {"os": list(ALL)}


class TestSelectPlatforms:
    def test_empty_request_keeps_all(self) -> None:
        platforms = platforms_for(Pipeline.CI, CONFIG)
        assert select_platforms(platforms, ()) == Ok(platforms)

    def test_keeps_matrix_order(self) -> None:
        platforms = platforms_for(Pipeline.CI, CONFIG)
        result = select_platforms(platforms, ["windows-latest", "macos-latest"])

        assert isinstance(result, Ok)
        assert _ids(result.value) == ("macos-latest", "windows-latest")

    def test_unknown_platform(self) -> None:
        result = select_platforms(platforms_for(Pipeline.CI, CONFIG), ["solaris-10"])

        assert isinstance(result, Err)
        assert "solaris-10" in result.error.message


class TestPlanRun:
    def test_release_tag(self) -> None:
        event = Event(kind="push", ref="refs/tags/v1.2.3")
        result = plan_run(Pipeline.RELEASE, event, CONFIG)

        assert isinstance(result, Ok)
        run = result.value
        assert run is not None
        assert run.version_tag == "1.2.3"
        assert _ids(tuple(e.platform for e in run.executions)) == ALL
        assert all(e.toolchain == "nightly" for e in run.executions)

    def test_rejected_event_has_no_executions(self) -> None:
        event = Event(kind="push", ref="refs/heads/feature")
        assert plan_run(Pipeline.CI, event, CONFIG) == Ok(None)

    def test_pull_request_plans_ci_without_version(self) -> None:
        event = Event(kind="pull_request", ref="refs/pull/1/merge", base_ref="master")
        result = plan_run(Pipeline.CI, event, CONFIG)

        assert isinstance(result, Ok)
        assert result.value is not None
        assert result.value.version_tag is None

    def test_only_filters(self) -> None:
        event = Event(kind="push", ref="refs/heads/master")
        result = plan_run(Pipeline.CI, event, CONFIG, only=["ubuntu-latest"])

        assert isinstance(result, Ok)
        assert result.value is not None
        assert [e.platform.id for e in result.value.executions] == ["ubuntu-latest"]

    def test_bad_version_tag(self) -> None:
        config = Config(matrix=MatrixConfig(platforms=("ubuntu-latest",)))
        # Matches the gate pattern v* but the version group is empty.
        event = Event(kind="push", ref="refs/tags/v")
        result = plan_run(Pipeline.RELEASE, event, config)

        assert isinstance(result, Err)
