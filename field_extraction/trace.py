"""
Trace Recorder Module.

Structured, append-only log of one extraction call. The review UI reads
the trace to decide whether a document needs manual correction, so every
branch the pipeline takes leaves a StepRecord here.

Records are mirrored to the module logger at DEBUG level.

Author: ML Engineering Team
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from field_extraction.utils.logger import get_logger

logger = get_logger(__name__)


class StepStatus(Enum):
    """Outcome of a pipeline step."""
    START = "start"
    SUCCESS = "success"
    FAILED = "failed"
    NO_MATCH = "no_match"
    PARTIAL = "partial"


@dataclass(frozen=True)
class StepRecord:
    """
    One entry of the trace.

    Attributes:
        step_name: Pipeline step (e.g. "classify", "ocr", "arbitration").
        status: Outcome of the step.
        metrics: Optional measurements (sizes, counts, scores, errors).
        timestamp: Wall-clock time of the record.
    """
    step_name: str
    status: StepStatus
    metrics: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'step': self.step_name,
            'status': self.status.value,
            'metrics': dict(self.metrics),
            'timestamp': self.timestamp,
        }


class TraceRecorder:
    """
    Collects the StepRecords of a single extraction call.

    One recorder is created per call; it is never shared between calls.

    Example:
        >>> trace = TraceRecorder()
        >>> trace.start("classify")
        >>> trace.success("classify", modality="csv")
        >>> [r.status.value for r in trace.records]
        ['start', 'success']
    """

    def __init__(self) -> None:
        self._records: List[StepRecord] = []

    def record(self, step_name: str, status: StepStatus, **metrics: Any) -> StepRecord:
        """Append a record and return it."""
        entry = StepRecord(step_name=step_name, status=status, metrics=metrics)
        self._records.append(entry)
        logger.debug(f"[{step_name}] {status.value} {metrics if metrics else ''}".rstrip())
        return entry

    def start(self, step_name: str, **metrics: Any) -> StepRecord:
        return self.record(step_name, StepStatus.START, **metrics)

    def success(self, step_name: str, **metrics: Any) -> StepRecord:
        return self.record(step_name, StepStatus.SUCCESS, **metrics)

    def failed(self, step_name: str, **metrics: Any) -> StepRecord:
        return self.record(step_name, StepStatus.FAILED, **metrics)

    def no_match(self, step_name: str, **metrics: Any) -> StepRecord:
        return self.record(step_name, StepStatus.NO_MATCH, **metrics)

    def partial(self, step_name: str, **metrics: Any) -> StepRecord:
        return self.record(step_name, StepStatus.PARTIAL, **metrics)

    @contextmanager
    def step(self, step_name: str, **metrics: Any) -> Iterator[Dict[str, Any]]:
        """
        Record a start entry, then success or failure around a block.

        The block may fill the yielded dict with metrics for the closing
        record, and may set its "status" key to override SUCCESS.
        Exceptions are recorded as failed and re-raised.
        """
        self.start(step_name, **metrics)
        closing: Dict[str, Any] = {}
        started = time.time()
        try:
            yield closing
        except Exception as e:
            closing.pop('status', None)
            closing['error'] = str(e)
            closing['elapsed'] = round(time.time() - started, 4)
            self.failed(step_name, **closing)
            raise
        closing['elapsed'] = round(time.time() - started, 4)
        status = closing.pop('status', StepStatus.SUCCESS)
        self.record(step_name, status, **closing)

    @property
    def records(self) -> Tuple[StepRecord, ...]:
        return tuple(self._records)

    def last(self, step_name: str) -> Optional[StepRecord]:
        """Most recent record for a step, if any."""
        for entry in reversed(self._records):
            if entry.step_name == step_name:
                return entry
        return None

    @property
    def has_failure(self) -> bool:
        return any(r.status is StepStatus.FAILED for r in self._records)

    def __len__(self) -> int:
        return len(self._records)
