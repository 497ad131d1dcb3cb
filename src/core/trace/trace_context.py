"""Trace Context - per-query stage tracking.

This module provides the trace context the answering pipeline threads
through every stage. Each stage is recorded with its elapsed time, and the
context remembers the stage the query is currently in, which gives the
per-query state machine:

    validating -> embedding -> retrieving -> assembling -> generating -> done

with a transition to ``failed`` from any stage.
"""

import time
import uuid
from enum import Enum
from typing import Any


class PipelineStage(str, Enum):
    """States of a single query."""

    VALIDATING = "validating"
    EMBEDDING = "embedding"
    RETRIEVING = "retrieving"
    ASSEMBLING = "assembling"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


class TraceContext:
    """Trace context for one pipeline run.

    Providers record free-form stages (e.g. 'embedding_request') through
    record_stage(); the orchestrator moves the query through PipelineStage
    states with enter().
    """

    def __init__(self, trace_id: str | None = None) -> None:
        """Initialize trace context with a unique trace ID."""
        self._trace_id: str = trace_id or uuid.uuid4().hex[:16]
        self._stages: dict[str, Any] = {}
        self._history: list[dict[str, Any]] = []
        self._state: PipelineStage = PipelineStage.VALIDATING
        self._start = time.perf_counter()
        self._state_start = self._start

    @property
    def trace_id(self) -> str:
        """Get the unique trace ID for this pipeline run."""
        return self._trace_id

    @property
    def state(self) -> PipelineStage:
        """Get the stage the query is currently in."""
        return self._state

    @property
    def history(self) -> list[dict[str, Any]]:
        """Completed states with their durations, in order."""
        return list(self._history)

    @property
    def elapsed(self) -> float:
        """Seconds since the trace started."""
        return time.perf_counter() - self._start

    def enter(self, state: PipelineStage) -> None:
        """Move the query to a new state, closing the current one.

        Args:
            state: The next PipelineStage.
        """
        now = time.perf_counter()
        self._history.append({
            "state": self._state.value,
            "duration": now - self._state_start,
        })
        self._state = state
        self._state_start = now

    def fail(self, error: Exception) -> None:
        """Move the query to FAILED, remembering where it failed."""
        failed_in = self._state.value
        self.enter(PipelineStage.FAILED)
        self.record_stage("failure", {
            "failed_in": failed_in,
            "error_type": type(error).__name__,
        })

    def record_stage(self, stage_name: str, data: dict[str, Any]) -> None:
        """Record data for a pipeline stage.

        Args:
            stage_name: Name of the stage (e.g., "embedding_request").
            data: Dictionary of stage data to record.
        """
        self._stages[stage_name] = data

    def get_stage(self, stage_name: str) -> dict[str, Any] | None:
        """Get recorded data for a stage.

        Args:
            stage_name: Name of the pipeline stage.

        Returns:
            Dictionary of stage data, or None if not recorded.
        """
        return self._stages.get(stage_name)

    def get_all_stages(self) -> dict[str, dict[str, Any]]:
        """Get all recorded stage data."""
        return dict(self._stages)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable summary of the trace."""
        return {
            "trace_id": self._trace_id,
            "state": self._state.value,
            "elapsed": self.elapsed,
            "history": self.history,
            "stages": self.get_all_stages(),
        }

    def __repr__(self) -> str:
        """String representation of trace context."""
        return f"TraceContext(trace_id={self._trace_id}, state={self._state.value})"
