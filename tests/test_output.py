"""
Tests for task outputs and run aggregation.
"""

import json
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta

import pytest

from swarmflow.output import (
    NO_OUTPUT,
    SKIPPED_OUTPUT,
    OrchestrationResult,
    TaskOutput,
    aggregate,
    summarize,
)


class TestTaskOutput:
    """Tests for TaskOutput."""

    def test_summary_defaults_to_short_raw(self):
        assert TaskOutput(task_id="t", agent_id="a", raw="short").summary == "short"

    def test_long_summary_truncated(self):
        output = TaskOutput(task_id="t", agent_id="a", raw="y" * 150)
        assert output.summary == "y" * 97 + "..."
        assert len(output.summary) == 100

    def test_skipped(self):
        output = TaskOutput.skipped("t", None, "Optional step")
        assert output.raw == SKIPPED_OUTPUT
        assert output.summary == "Task was skipped"
        assert output.was_skipped
        assert output.success

    def test_to_dict(self):
        data = TaskOutput(task_id="t", agent_id="a", raw="r", fields={"role": "Writer"}).to_dict()
        assert data["task_id"] == "t"
        assert data["fields"] == {"role": "Writer"}
        assert "created_at" in data

    def test_is_immutable(self):
        output = TaskOutput(task_id="t", agent_id="a", raw="r", fields={"role": "Writer"})

        with pytest.raises(FrozenInstanceError):
            output.raw = "tampered"
        with pytest.raises(FrozenInstanceError):
            output.success = False
        with pytest.raises(TypeError):
            output.fields["role"] = "Editor"

    def test_fields_copied_from_caller(self):
        fields = {"role": "Writer"}
        output = TaskOutput(task_id="t", agent_id="a", raw="r", fields=fields)

        fields["role"] = "Editor"

        assert output.fields["role"] == "Writer"

    def test_outputs_inside_result_cannot_change(self):
        result = aggregate("run", [TaskOutput("a", "x", "ok")], None, datetime.now())

        with pytest.raises(FrozenInstanceError):
            result.task_outputs[0].success = False

        assert result.success == all(o.success for o in result.task_outputs)


class TestAggregate:
    """Tests for aggregate and OrchestrationResult."""

    def test_final_output_defaults_to_last_raw(self):
        outputs = [TaskOutput("a", "x", "first"), TaskOutput("b", "x", "second")]
        result = aggregate("run", outputs, None, datetime.now())
        assert result.final_output == "second"
        assert result.success

    def test_explicit_final_output(self):
        result = aggregate("run", [TaskOutput("a", "x", "first")], "final", datetime.now())
        assert result.final_output == "final"

    def test_no_outputs(self):
        result = aggregate("run", [], None, datetime.now())
        assert result.final_output == NO_OUTPUT
        assert result.success
        assert result.summary == NO_OUTPUT

    def test_success_is_and_of_outputs(self):
        outputs = [TaskOutput("a", "x", "ok"), TaskOutput("b", "x", "bad", success=False)]
        result = aggregate("run", outputs, None, datetime.now())
        assert not result.success
        assert result.success_rate == 0.5
        assert [o.task_id for o in result.failed_outputs] == ["b"]

    def test_result_is_immutable(self):
        result = aggregate("run", [TaskOutput("a", "x", "ok")], None, datetime.now(), {"total_tasks": 1})

        with pytest.raises(FrozenInstanceError):
            result.final_output = "other"
        with pytest.raises(TypeError):
            result.metrics["total_tasks"] = 5
        assert isinstance(result.task_outputs, tuple)

    def test_lookup_and_serialization(self):
        start = datetime.now() - timedelta(seconds=2)
        result = aggregate("run-9", [TaskOutput("a", "x", "ok")], None, start, {"total_tasks": 1})

        assert result.get_task_output("a").raw == "ok"
        assert result.get_task_output("missing") is None
        assert result.execution_time >= timedelta(seconds=2)

        data = json.loads(result.to_json())
        assert data["run_id"] == "run-9"
        assert data["metrics"] == {"total_tasks": 1}
        assert data["task_outputs"][0]["raw"] == "ok"

    def test_summary_joins_task_summaries(self):
        result = OrchestrationResult(
            run_id="r",
            task_outputs=[TaskOutput("a", "x", "one"), TaskOutput("b", "x", "two")],
            final_output="two",
            start_time=datetime.now(),
            end_time=datetime.now(),
            success=True,
        )
        assert result.summary == "one\ntwo"


def test_summarize_limit():
    assert summarize("abcdef", 5) == "ab..."
    assert summarize("abc", 5) == "abc"
