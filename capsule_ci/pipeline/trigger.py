"""Trigger gate: decide whether an event starts a pipeline run.

- release: a pushed tag matching the tag pattern (`v*`).
- ci, coverage: a push to the main branch, or a pull request targeting it.

A rejected event is not an error; the run simply does not start.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from capsule_ci.core.config import ProjectConfig
from capsule_ci.pipeline.model import Event, Pipeline


@dataclass(frozen=True, slots=True)
class GateDecision:
    fires: bool
    reason: str


def _glob_to_regex(pattern: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return "".join(out)


def tag_matches(tag: str, pattern: str) -> bool:
    """Match a tag name against a GitHub Actions filter pattern.

    `*` matches any run of characters except `/`, `**` also crosses `/`.
    Every other character is literal, so `v*` accepts `v1.2.3` but not `v1.2/rc1`.
    """
    return re.fullmatch(_glob_to_regex(pattern), tag) is not None


def _tag_gate(event: Event, pattern: str) -> GateDecision:
    if event.kind != "push":
        return GateDecision(False, f"{event.kind} events never release")
    tag = event.tag_name
    if tag is None:
        return GateDecision(False, f"{event.ref} is not a tag")
    if not tag_matches(tag, pattern):
        return GateDecision(False, f"tag {tag} does not match {pattern}")
    return GateDecision(True, f"tag {tag} matches {pattern}")


def _branch_gate(event: Event, main_branch: str) -> GateDecision:
    match event.kind:
        case "push":
            branch = event.branch_name
            if branch == main_branch:
                return GateDecision(True, f"push to {main_branch}")
            return GateDecision(False, f"push to {event.ref}, not {main_branch}")
        case "pull_request":
            target = event.target_branch
            if target == main_branch:
                return GateDecision(True, f"pull request into {main_branch}")
            return GateDecision(False, f"pull request into {target or '?'}, not {main_branch}")
    return GateDecision(False, f"unsupported event: {event.kind}")


def evaluate(pipeline: Pipeline, event: Event, project: ProjectConfig) -> GateDecision:
    if pipeline is Pipeline.RELEASE:
        return _tag_gate(event, project.tag_pattern)
    return _branch_gate(event, project.main_branch)


def fires(pipeline: Pipeline, event: Event, project: ProjectConfig) -> bool:
    return evaluate(pipeline, event, project).fires
