"""
Tests for tasks: lifecycle, gating, context selection and per-run copies.
"""

import pytest

from swarmflow.errors import (
    AlreadyExecutedError,
    CapabilityExecutionError,
    ConfigurationError,
)
from swarmflow.output import SKIPPED_OUTPUT, TaskOutput
from swarmflow.task import Task, TaskStatus, interpolate, join_context

from conftest import ScriptedExecutor, make_agent, make_task


def _output(task_id: str, raw: str = "text") -> TaskOutput:
    return TaskOutput(task_id=task_id, agent_id="a", raw=raw)


class TestInterpolate:
    """Tests for {placeholder} substitution."""

    def test_replaces_known_keys(self):
        assert interpolate("Research {topic} in {year}", {"topic": "AI", "year": 2024}) == "Research AI in 2024"

    def test_leaves_unknown_placeholders(self):
        assert interpolate("Research {topic}", {"other": "x"}) == "Research {topic}"

    def test_no_inputs_returns_text(self):
        assert interpolate("Plain {text}", None) == "Plain {text}"


class TestTaskConstruction:
    """Tests for Task validation."""

    def test_blank_description_rejected(self):
        with pytest.raises(ConfigurationError):
            Task(description="   ")

    def test_generates_id(self):
        task = Task(description="Something")
        assert task.id
        assert task.status == TaskStatus.PENDING

    def test_string_dependency_normalized(self):
        task = Task(description="Second", depends_on="first")
        assert task.depends_on == ["first"]

    def test_prompt_includes_expected_output(self):
        task = Task(description="Summarize", expected_output="Three bullets")
        assert "Task: Summarize" in task.prompt
        assert "Expected Output: Three bullets" in task.prompt


class TestRelevantContext:
    """Tests for context selection."""

    def test_without_dependencies_sees_everything(self):
        task = make_task("t3")
        outputs = [_output("t1"), _output("t2")]
        assert task.relevant_context(outputs) == outputs

    def test_with_dependencies_sees_only_them(self):
        task = make_task("t3", depends_on=["t1"])
        outputs = [_output("t1"), _output("t2")]
        assert [o.task_id for o in task.relevant_context(outputs)] == ["t1"]

    def test_is_ready(self):
        task = make_task("t3", depends_on=["t1", "t2"])
        assert not task.is_ready({"t1"})
        assert task.is_ready({"t1", "t2"})


class TestTaskExecute:
    """Tests for Task.execute."""

    def test_success_records_output(self, agent):
        task = make_task("t1", agent=agent)

        output = task.execute([])

        assert task.status == TaskStatus.COMPLETED
        assert task.output is output
        assert output.task_id == "t1"
        assert output.agent_id == "researcher"
        assert task.started_at is not None
        assert task.completed_at is not None

    def test_second_execution_rejected(self, agent):
        task = make_task("t1", agent=agent)
        task.execute([])

        with pytest.raises(AlreadyExecutedError) as exc_info:
            task.execute([])

        assert exc_info.value.task_id == "t1"

    def test_false_condition_skips_without_calling_executor(self, agent, executor):
        task = make_task("t1", agent=agent, condition=lambda text: "go" in text)

        output = task.execute([_output("t0", "stop here")])

        assert task.status == TaskStatus.SKIPPED
        assert output.raw == SKIPPED_OUTPUT
        assert output.was_skipped
        assert output.success
        assert executor.calls == []

    def test_true_condition_runs(self, agent, executor):
        task = make_task("t1", agent=agent, condition=lambda text: "go" in text)

        task.execute([_output("t0", "go ahead")])

        assert task.status == TaskStatus.COMPLETED
        assert len(executor.calls) == 1

    def test_condition_sees_joined_context(self, agent):
        seen = []
        task = make_task("t1", agent=agent, condition=lambda text: seen.append(text) or True)

        task.execute([_output("a", "first"), _output("b", "second")])

        assert seen == ["first second"]
        assert join_context([]) == ""

    def test_missing_agent_fails(self):
        task = make_task("t1")

        with pytest.raises(CapabilityExecutionError):
            task.execute([])

        assert task.status == TaskStatus.FAILED
        assert "Agent is required" in task.failure_reason

    def test_executor_error_marks_failed(self):
        error = CapabilityExecutionError("provider down")
        agent = make_agent(executor=ScriptedExecutor({"Perform t1": error}))
        task = make_task("t1", agent=agent)

        with pytest.raises(CapabilityExecutionError) as exc_info:
            task.execute([])

        assert exc_info.value is error
        assert task.status == TaskStatus.FAILED

    def test_unexpected_error_is_wrapped(self):
        agent = make_agent(executor=ScriptedExecutor())
        task = make_task("t1", agent=agent, condition=lambda text: 1 / 0)

        with pytest.raises(CapabilityExecutionError) as exc_info:
            task.execute([])

        assert isinstance(exc_info.value.__cause__, ZeroDivisionError)
        assert task.status == TaskStatus.FAILED

    def test_context_filtered_to_dependencies(self, agent, executor):
        task = make_task("t3", agent=agent, depends_on=["t1"])

        task.execute([_output("t1"), _output("t2")])

        _, prompt = executor.calls[0]
        assert [o.task_id for o in prompt.context_outputs] == ["t1"]

    def test_output_file_written_on_completion(self, agent, tmp_path):
        path = tmp_path / "reports" / "t1.md"
        task = make_task("t1", agent=agent, output_file=str(path))

        output = task.execute([])

        assert path.read_text() == output.raw
        assert task.status == TaskStatus.COMPLETED

    def test_output_file_not_written_when_skipped(self, agent, tmp_path):
        path = tmp_path / "t1.md"
        task = make_task("t1", agent=agent, output_file=str(path), condition=lambda text: False)

        task.execute([])

        assert not path.exists()

    def test_unwritable_output_file_fails_task(self, agent, tmp_path):
        # The path names an existing directory
        task = make_task("t1", agent=agent, output_file=str(tmp_path))

        with pytest.raises(CapabilityExecutionError) as exc_info:
            task.execute([])

        assert isinstance(exc_info.value.__cause__, OSError)
        assert task.status == TaskStatus.FAILED
        assert task.output is None


class TestFreshCopy:
    """Tests for per-run task copies."""

    def test_copy_is_pending_and_independent(self, agent):
        task = make_task("t1", agent=agent, depends_on=["t0"])
        task.execute([_output("t0")])

        copy = task.fresh_copy()

        assert copy.status == TaskStatus.PENDING
        assert copy.output is None
        assert copy.id == "t1"
        assert copy.agent is agent
        copy.depends_on.append("x")
        assert task.depends_on == ["t0"]

    def test_copy_substitutes_inputs(self):
        task = make_task("t1", description="Write about {topic}", expected_output="A {style} essay")

        copy = task.fresh_copy({"topic": "bees", "style": "short"})

        assert copy.description == "Write about bees"
        assert copy.expected_output == "A short essay"
        assert task.description == "Write about {topic}"

    def test_copy_substitutes_output_file(self):
        task = make_task("t1", output_file="out/{topic}.md")

        assert task.fresh_copy({"topic": "bees"}).output_file == "out/bees.md"
        assert task.fresh_copy().output_file == "out/{topic}.md"
        assert make_task("t2").fresh_copy({"topic": "x"}).output_file is None

    def test_assign_after_execution_rejected(self, agent):
        task = make_task("t1", agent=agent)
        task.execute([])

        with pytest.raises(AlreadyExecutedError):
            task.assign(make_agent("Other"))
