"""Run a planned pipeline: every platform execution, concurrently and unordered.

Executions are independent failure domains. A failing execution never
cancels its siblings; the run fails if any execution failed.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from capsule_ci.pipeline.model import ExecutionOutcome, PlatformExecution, Run, RunReport

Execute = Callable[[PlatformExecution], ExecutionOutcome]


def run_executions(run: Run, execute: Execute, *, jobs: int = 1) -> RunReport:
    """Execute every platform of `run` and collect the outcomes in matrix order."""
    executions = run.executions
    if jobs <= 1 or len(executions) <= 1:
        outcomes = tuple(execute(e) for e in executions)
        return RunReport(run=run, outcomes=outcomes)

    with ThreadPoolExecutor(max_workers=min(jobs, len(executions))) as pool:
        futures = [pool.submit(execute, e) for e in executions]
        outcomes = tuple(f.result() for f in futures)
    return RunReport(run=run, outcomes=outcomes)
