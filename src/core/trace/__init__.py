"""Core Trace - Pipeline observability and tracing.

This module provides the trace context and per-query state machine.
"""

from core.trace.trace_context import PipelineStage, TraceContext

__all__ = ["PipelineStage", "TraceContext"]
