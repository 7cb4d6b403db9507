"""Unit tests for the step sequencer."""

from __future__ import annotations

from rollout_cli.errors import HardFailure, ReadinessTimeoutError, StoreError
from rollout_cli.rollout import SequenceResult, Step, StepSequencer


class TestStepSequencer:
    """Tests for StepSequencer."""

    def test_runs_steps_in_order(self, capsys):
        ran = []
        steps = [Step(name, lambda name=name: ran.append(name)) for name in ("a", "b", "c")]

        result = StepSequencer(steps).run()

        assert result == SequenceResult(success=True, completed=["a", "b", "c"])
        assert ran == ["a", "b", "c"]
        out = capsys.readouterr().out
        assert "Step 1/3: a" in out
        assert "Step 3/3: c" in out

    def test_stops_at_first_hard_failure(self):
        ran = []

        def _fail():
            ran.append("b")
            raise ReadinessTimeoutError("node not Ready")

        steps = [
            Step("a", lambda: ran.append("a")),
            Step("b", _fail),
            Step("c", lambda: ran.append("c")),
        ]

        result = StepSequencer(steps).run()

        assert result.success is False
        assert result.completed == ["a"]
        assert result.failed_step == "b"
        assert result.error == "node not Ready"
        assert ran == ["a", "b"]

    def test_return_value_of_step_is_ignored(self):
        result = StepSequencer([Step("a", lambda: False)]).run()
        assert result.success is True

    def test_empty_sequence_succeeds(self):
        assert StepSequencer([]).run().success is True

    def test_base_hard_failure_also_stops(self):
        def _fail():
            raise HardFailure("precondition")

        result = StepSequencer([Step("only", _fail)]).run()

        assert result.failed_step == "only"

    def test_store_error_is_recorded_against_step(self):
        ran = []

        def _apply_fails():
            raise StoreError("apply MachineSet/demo-gpu-worker-2a failed", stderr="forbidden")

        steps = [
            Step("pull-secret", lambda: ran.append("pull-secret")),
            Step("gpu", _apply_fails),
            Step("cpu", lambda: ran.append("cpu")),
        ]

        result = StepSequencer(steps).run()

        assert result.success is False
        assert result.completed == ["pull-secret"]
        assert result.failed_step == "gpu"
        assert result.error == "apply MachineSet/demo-gpu-worker-2a failed"
        assert ran == ["pull-secret"]
