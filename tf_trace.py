"""
Stage tracing for TreeFriends dataset enrichment.

Provides a thread-local TraceContext that records:
  - Per-stage timing (stage_name, elapsed_ms, items in / out, errors)
  - End-of-run summary (total_elapsed, rows dropped, outcome)

Usage:
    from tf_trace import TraceContext, set_trace, clear_trace, traced_stage

    # Around a pipeline run (pipeline.py):
    ctx = TraceContext(trace_id="startup")
    set_trace(ctx)
    ...
    ctx.log_summary()
    clear_trace()

    # Inside a stage (no-op when no trace is active):
    with traced_stage("tree_friends", items_in=len(trees)) as stage:
        ...
        stage.items_out = len(trees)
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Data classes for trace records
# =============================================================================

@dataclass
class StageRecord:
    """One enrichment stage (parse_rents, parse_trees, tree_friends, etc.)."""
    stage_name: str
    start_ts: float = 0.0
    end_ts: float = 0.0
    elapsed_ms: int = 0
    items_in: Optional[int] = None
    items_out: Optional[int] = None
    error_class: str = ""
    error_message: str = ""

    @property
    def items_dropped(self) -> int:
        if self.items_in is None or self.items_out is None:
            return 0
        return max(self.items_in - self.items_out, 0)


# =============================================================================
# Trace context
# =============================================================================

@dataclass
class TraceContext:
    """Accumulates timing data for a single enrichment run."""
    trace_id: str
    run_start: float = field(default_factory=time.time)
    stages: List[StageRecord] = field(default_factory=list)
    model_version: str = ""

    def record_stage(self, rec: StageRecord):
        rec.elapsed_ms = int((rec.end_ts - rec.start_ts) * 1000)
        self.stages.append(rec)

        status = "ERR" if rec.error_class else "OK"
        err_info = f" err={rec.error_class}: {rec.error_message}" if rec.error_class else ""
        logger.info(
            "  [stage] trace=%s %s %s %dms in=%s out=%s%s",
            self.trace_id,
            rec.stage_name,
            status,
            rec.elapsed_ms,
            "-" if rec.items_in is None else rec.items_in,
            "-" if rec.items_out is None else rec.items_out,
            err_info,
        )

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summary_dict(self) -> Dict[str, Any]:
        """Return a summary dict suitable for logging and JSON responses."""
        total_elapsed = int((time.time() - self.run_start) * 1000)
        errored = [s for s in self.stages if s.error_class]
        completed = [s for s in self.stages if not s.error_class]

        if errored and not completed:
            outcome = "error"
        elif not completed:
            outcome = "empty"
        elif errored:
            outcome = "partial"
        else:
            outcome = "success"

        result = {
            "trace_id": self.trace_id,
            "total_elapsed_ms": total_elapsed,
            "stages_completed": len(completed),
            "stages_errored": len(errored),
            "rows_dropped": sum(s.items_dropped for s in self.stages),
            "final_outcome": outcome,
        }
        if self.model_version:
            result["model_version"] = self.model_version
        return result

    def log_summary(self):
        """Emit a single structured summary log line."""
        s = self.summary_dict()
        logger.info(
            "[trace-summary] trace=%s total_ms=%d completed=%d errored=%d "
            "dropped=%d outcome=%s",
            s["trace_id"],
            s["total_elapsed_ms"],
            s["stages_completed"],
            s["stages_errored"],
            s["rows_dropped"],
            s["final_outcome"],
        )

    def stages_to_list(self) -> List[Dict[str, Any]]:
        return [
            {
                "stage": s.stage_name,
                "elapsed_ms": s.elapsed_ms,
                "items_in": s.items_in,
                "items_out": s.items_out,
                "error": (
                    f"{s.error_class}: {s.error_message}"
                    if s.error_class else None
                ),
            }
            for s in self.stages
        ]

    def full_trace_dict(self) -> Dict[str, Any]:
        summary = self.summary_dict()
        summary["stages"] = self.stages_to_list()
        return summary


# =============================================================================
# Thread-local storage
# =============================================================================

_trace_local = threading.local()


def get_trace() -> Optional[TraceContext]:
    """Get the current thread's trace context, or None."""
    return getattr(_trace_local, "ctx", None)


def set_trace(ctx: Optional[TraceContext]):
    """Set the trace context for the current thread."""
    _trace_local.ctx = ctx


def clear_trace():
    """Clear the current trace context."""
    _trace_local.ctx = None


@contextmanager
def traced_stage(name: str, items_in: Optional[int] = None) -> Iterator[StageRecord]:
    """Time a block as one stage of the active trace.

    The yielded StageRecord can be updated (items_out) inside the block.
    Exceptions are recorded on the stage and re-raised. Without an active
    trace the record is simply discarded.
    """
    rec = StageRecord(stage_name=name, start_ts=time.time(), items_in=items_in)
    try:
        yield rec
    except Exception as e:
        rec.error_class = type(e).__name__
        rec.error_message = str(e)
        raise
    finally:
        rec.end_ts = time.time()
        trace = get_trace()
        if trace:
            trace.record_stage(rec)
