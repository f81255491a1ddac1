"""
Unit tests for the trace recorder.
"""

import pytest

from field_extraction.trace import StepStatus, TraceRecorder


class TestTraceRecorder:
    """Append-only step records."""

    def test_records_in_order(self):
        trace = TraceRecorder()
        trace.start("classify")
        trace.success("classify", modality="csv")
        assert [(r.step_name, r.status) for r in trace.records] == [
            ("classify", StepStatus.START),
            ("classify", StepStatus.SUCCESS),
        ]
        assert trace.records[1].metrics == {'modality': 'csv'}

    def test_step_success(self):
        trace = TraceRecorder()
        with trace.step("pattern") as metrics:
            metrics['candidates'] = 3
        closing = trace.last("pattern")
        assert closing.status is StepStatus.SUCCESS
        assert closing.metrics['candidates'] == 3
        assert 'elapsed' in closing.metrics

    def test_step_status_override(self):
        trace = TraceRecorder()
        with trace.step("layout") as metrics:
            metrics['status'] = StepStatus.NO_MATCH
        closing = trace.last("layout")
        assert closing.status is StepStatus.NO_MATCH
        assert 'status' not in closing.metrics

    def test_step_failure_is_recorded_and_reraised(self):
        trace = TraceRecorder()
        with pytest.raises(ValueError):
            with trace.step("download"):
                raise ValueError("boom")
        closing = trace.last("download")
        assert closing.status is StepStatus.FAILED
        assert closing.metrics['error'] == "boom"
        assert trace.has_failure

    def test_to_dict(self):
        trace = TraceRecorder()
        entry = trace.partial("ocr", page=0)
        data = entry.to_dict()
        assert data['step'] == "ocr"
        assert data['status'] == "partial"
        assert data['metrics'] == {'page': 0}

    def test_last_missing_step(self):
        assert TraceRecorder().last("repair") is None
