"""One platform execution: the strictly sequential stage list of a pipeline.

    ci:       provision -> clean -> test -> build (--all)
    coverage: provision -> clean -> test (instrumented) -> coverage
    release:  provision -> clean -> build (--release) -> package -> publish

The first failing stage ends the execution. Nothing here is shared between
executions; each gets its own console prefix and cargo target dir.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from capsule_ci.core.config import Config
from capsule_ci.core.project import Project
from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.output.console import ConsoleProtocol, PrefixedConsole
from capsule_ci.pipeline.cargo import CargoStage
from capsule_ci.pipeline.coverage import CoverageReporter, instrumentation_env
from capsule_ci.pipeline.errors import PipelineError
from capsule_ci.pipeline.model import (
    Artifact,
    Event,
    ExecutionOutcome,
    Pipeline,
    PlatformExecution,
    Stage,
)
from capsule_ci.pipeline.packaging import package
from capsule_ci.pipeline.publish import ReleasePublisher
from capsule_ci.pipeline.toolchain import ToolchainProvisioner
from capsule_ci.platform.detection import OsFamily

StageFn = Callable[[], Result[object, PipelineError]]


@dataclass(frozen=True, slots=True)
class ExecutionOptions:
    dry_run: bool = False
    clobber: bool = False
    host_family: OsFamily | None = None


class ExecutionService:
    """Runs the stages of one pipeline for a single platform."""

    def __init__(
        self,
        *,
        pipeline: Pipeline,
        event: Event,
        project: Project,
        config: Config,
        console: ConsoleProtocol,
        options: ExecutionOptions | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._event = event
        self._project = project
        self._config = config
        self._console = console
        self._options = options or ExecutionOptions()

    def execute(self, execution: PlatformExecution) -> ExecutionOutcome:
        console = PrefixedConsole(self._console, execution.platform.id)
        console.header(f"{self._pipeline} on {execution.platform.id} ({execution.toolchain})")

        host = self._options.host_family
        if host is not None and host != execution.platform.family:
            console.warning(
                f"host is {host}, {execution.platform.id} expects {execution.platform.family}"
            )

        completed: list[Stage] = []
        artifact: Artifact | None = None
        for stage, fn in self._stages(execution, console):
            result = fn()
            if isinstance(result, Err):
                console.error(f"{stage}: {_describe(result.error)}")
                return ExecutionOutcome(execution, Err(result.error), tuple(completed))
            if isinstance(result.value, Artifact):
                artifact = result.value
            completed.append(stage)

        console.success(f"{self._pipeline} done")
        return ExecutionOutcome(execution, Ok(artifact), tuple(completed))

    def _stages(
        self,
        execution: PlatformExecution,
        console: ConsoleProtocol,
    ) -> list[tuple[Stage, StageFn]]:
        dry_run = self._options.dry_run
        timeouts = self._config.timeouts
        root = self._project.root
        platform_id = execution.platform.id
        target_dir = self._project.platform_target_dir(platform_id)

        toolchain = ToolchainProvisioner(
            project_root=root,
            channel=execution.toolchain,
            console=console,
            timeout=timeouts.toolchain,
            dry_run=dry_run,
        )
        cargo = CargoStage(
            project_root=root,
            target_dir=target_dir,
            console=console,
            build_timeout=timeouts.build,
            test_timeout=timeouts.test,
            dry_run=dry_run,
        )

        stages: list[tuple[Stage, StageFn]] = [
            ("provision", toolchain.provision),
            ("clean", lambda: cargo.ensure_cargo().flat_map(lambda _: cargo.clean())),
        ]

        match self._pipeline:
            case Pipeline.CI:
                stages += [
                    ("test", cargo.test),
                    ("build", lambda: cargo.build(release=False)),
                ]
            case Pipeline.COVERAGE:
                reporter = CoverageReporter(
                    project_root=root,
                    config=self._config.coverage,
                    console=console,
                    platform_id=platform_id,
                    profile_dir=target_dir,
                    timeout=timeouts.upload,
                    dry_run=dry_run,
                )
                env = instrumentation_env(self._config.coverage.rustflags)
                sha = self._event.sha

                def coverage_stage() -> Result[None, PipelineError]:
                    report = reporter.generate()
                    if isinstance(report, Err):
                        return report
                    return reporter.upload(sha)

                stages += [
                    ("test", lambda: cargo.test(env)),
                    ("coverage", coverage_stage),
                ]
            case Pipeline.RELEASE:
                stages += self._release_stages(execution, cargo, console)

        return stages

    def _release_stages(
        self,
        execution: PlatformExecution,
        cargo: CargoStage,
        console: ConsoleProtocol,
    ) -> list[tuple[Stage, StageFn]]:
        version_tag = execution.version_tag
        if version_tag is None:
            raise ValueError("release executions need a version tag")

        built: dict[str, Artifact] = {}

        def package_stage() -> Result[Artifact, PipelineError]:
            result = package(
                tool=self._config.project.tool,
                platform=execution.platform,
                version_tag=version_tag,
                release_dir=self._project.release_dir(execution.platform.id),
                console=console,
                dry_run=self._options.dry_run,
            )
            if isinstance(result, Ok):
                built["artifact"] = result.value
            return result

        def publish_stage() -> Result[str, PipelineError]:
            publisher = ReleasePublisher(
                project_root=self._project.root,
                console=console,
                clobber=self._options.clobber or self._config.release.overwrite_assets,
                timeout=self._config.timeouts.upload,
                dry_run=self._options.dry_run,
            )
            return publisher.publish(self._event.ref, built["artifact"])

        return [
            ("build", lambda: cargo.build(release=True)),
            ("package", package_stage),
            ("publish", publish_stage),
        ]


def _describe(error: PipelineError) -> str:
    hint = getattr(error, "hint", None)
    if hint:
        return f"{error.message} (hint: {hint})"
    return error.message
