"""Pipeline domain: trigger gate, matrix, stages and run orchestration."""

from .errors import PipelineError
from .model import Artifact, Event, ExecutionOutcome, Pipeline, PlatformExecution, Run, RunReport

__all__ = [
    "Artifact",
    "Event",
    "ExecutionOutcome",
    "Pipeline",
    "PipelineError",
    "PlatformExecution",
    "Run",
    "RunReport",
]
