"""Environment matrix: expand a triggered event into platform executions."""

from __future__ import annotations

import json
from collections.abc import Sequence

from capsule_ci.core.config import Config
from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.pipeline import trigger
from capsule_ci.pipeline.errors import InvalidInput
from capsule_ci.pipeline.model import Event, Pipeline, PlatformExecution, Run
from capsule_ci.pipeline.version import derive_version_tag
from capsule_ci.platform.detection import RunnerPlatform


def platforms_for(pipeline: Pipeline, config: Config) -> tuple[RunnerPlatform, ...]:
    if pipeline is Pipeline.COVERAGE:
        ids = config.matrix.coverage_platforms
    else:
        ids = config.matrix.platforms
    return tuple(RunnerPlatform(i) for i in ids)


def github_matrix(platforms: Sequence[RunnerPlatform]) -> str:
    """JSON for a GitHub Actions `strategy.matrix` (`matrix.os`)."""
    return json.dumps({"os": [p.id for p in platforms]})


def select_platforms(
    platforms: Sequence[RunnerPlatform],
    requested: Sequence[str],
) -> Result[tuple[RunnerPlatform, ...], InvalidInput]:
    """Keep the requested entries, in matrix order. No request keeps them all."""
    if not requested:
        return Ok(tuple(platforms))

    known = {p.id for p in platforms}
    unknown = [r for r in requested if r not in known]
    if unknown:
        return Err(
            InvalidInput(
                message=f"platform not in matrix: {', '.join(unknown)}",
                hint=f"Matrix: {', '.join(p.id for p in platforms)}",
            )
        )

    wanted = set(requested)
    return Ok(tuple(p for p in platforms if p.id in wanted))


def plan_run(
    pipeline: Pipeline,
    event: Event,
    config: Config,
    *,
    only: Sequence[str] = (),
) -> Result[Run | None, InvalidInput]:
    """Gate the event and expand the matrix.

    Returns Ok(None) when the gate rejects the event: no execution exists.
    """
    if not trigger.fires(pipeline, event, config.project):
        return Ok(None)

    version_tag: str | None = None
    if pipeline is Pipeline.RELEASE:
        vres = derive_version_tag(event.ref, config.project.version_regex)
        if isinstance(vres, Err):
            return vres
        version_tag = vres.value

    selected = select_platforms(platforms_for(pipeline, config), only)
    if isinstance(selected, Err):
        return selected

    executions = tuple(
        PlatformExecution(
            platform=platform,
            toolchain=config.toolchain.channel,
            version_tag=version_tag,
        )
        for platform in selected.value
    )
    return Ok(Run(pipeline=pipeline, event=event, executions=executions))
