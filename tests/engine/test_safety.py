"""Tests for the Banker's safety algorithm (batch and step forms).

The batch form sweeps processes in ascending order, marking every
satisfiable process per pass.  The step form makes exactly one
decision per call.  Both must agree on who is deadlocked.
"""

import itertools
import random

import pytest

from deadlock_lab.safety import (
    StepState,
    StepStatus,
    can_satisfy,
    check_safety,
    run_steps,
    step_safety,
)
from deadlock_lab.scenarios import SCENARIOS
from deadlock_lab.state import SystemState, ValidationError

_RANDOM_STATES = 300


def _safe_state() -> SystemState:
    """The classic textbook instance (scenario 1)."""
    return SCENARIOS["safe"].state


def _deadlock_state() -> SystemState:
    """Circular wait with nothing available (scenario 2)."""
    return SCENARIOS["deadlock"].state


def _partial_state() -> SystemState:
    """P0 and P1 can finish; P2 can never get 3 instances."""
    return SystemState(
        num_processes=3,
        num_resources=1,
        available=[0],
        allocation=[[1], [1], [0]],
        max_need=[[1], [2], [3]],
    )


def _random_states(seed: int = 7) -> list[SystemState]:
    """Small random states covering both safe and unsafe cases."""
    rng = random.Random(seed)
    states: list[SystemState] = []
    for _ in range(_RANDOM_STATES):
        p = rng.randint(1, 4)
        r = rng.randint(1, 3)
        allocation = [[rng.randint(0, 3) for _ in range(r)] for _ in range(p)]
        max_need = [[a + rng.randint(0, 3) for a in row] for row in allocation]
        available = [rng.randint(0, 3) for _ in range(r)]
        states.append(SystemState(p, r, available, allocation, max_need))
    return states


def _replay_is_valid(state: SystemState, order: tuple[int, ...]) -> bool:
    """Return True if finishing processes in *order* never runs short."""
    work = list(state.available)
    for i in order:
        if not can_satisfy(state.need_of(i), work):
            return False
        work = [w + a for w, a in zip(work, state.allocation[i], strict=True)]
    return True


def _some_safe_order_exists(state: SystemState) -> bool:
    """Brute force: try every permutation."""
    return any(
        _replay_is_valid(state, order)
        for order in itertools.permutations(range(state.num_processes))
    )


# -- can_satisfy ---------------------------------------------------------------


class TestCanSatisfy:
    """Verify the component-wise Need <= Work comparison."""

    def test_fits(self) -> None:
        """Every component fits."""
        assert can_satisfy((1, 2, 2), (3, 3, 2))

    def test_one_component_too_big(self) -> None:
        """A single oversized component fails the check."""
        assert not can_satisfy((4, 0, 0), (3, 3, 2))

    def test_zero_need_always_fits(self) -> None:
        """A finished-in-effect process fits any Work."""
        assert can_satisfy((0, 0), (0, 0))


# -- Batch form ----------------------------------------------------------------


class TestCheckSafety:
    """Verify check_safety on known states."""

    def test_classic_example_is_safe(self) -> None:
        """The textbook state is safe with the canonical sequence."""
        result = check_safety(_safe_state())
        assert result.is_deadlocked is False
        assert result.is_safe
        assert result.safe_sequence == (1, 3, 4, 0, 2)
        assert result.deadlocked_processes == ()
        assert result.safe_sequence_length == 5

    def test_circular_wait_is_deadlocked(self) -> None:
        """Nothing available and everyone needs more: all deadlocked."""
        result = check_safety(_deadlock_state())
        assert result.is_deadlocked is True
        assert result.deadlocked_processes == (0, 1, 2, 3)
        assert result.safe_sequence == ()
        assert result.safe_sequence_length == 0

    def test_partial_deadlock(self) -> None:
        """Only the processes that can never finish are reported."""
        result = check_safety(_partial_state())
        assert result.deadlocked_processes == (2,)
        assert result.safe_sequence == (0, 1)

    def test_one_pass_can_mark_several(self) -> None:
        """P3 and P4 are both marked in the first pass, ahead of P0."""
        sequence = check_safety(_safe_state()).safe_sequence
        assert sequence.index(4) < sequence.index(0)

    def test_empty_state_is_safe(self) -> None:
        """With no holdings and no claims everybody finishes in order."""
        result = check_safety(SystemState.empty(3, 2))
        assert result.safe_sequence == (0, 1, 2)

    def test_to_dict(self) -> None:
        """The wire format uses the documented keys."""
        assert check_safety(_deadlock_state()).to_dict() == {
            "is_deadlocked": True,
            "deadlocked_processes": [0, 1, 2, 3],
            "safe_sequence": [],
            "safe_sequence_length": 0,
        }


class TestSafetyProperties:
    """Verify soundness and completeness on many random states."""

    def test_safe_sequences_replay_cleanly(self) -> None:
        """A reported safe sequence never runs Work negative."""
        for state in _random_states():
            result = check_safety(state)
            if not result.is_deadlocked:
                assert sorted(result.safe_sequence) == list(range(state.num_processes))
                assert _replay_is_valid(state, result.safe_sequence)

    def test_partial_sequence_replays_cleanly(self) -> None:
        """Even a partial sequence is a valid prefix."""
        for state in _random_states(seed=11):
            assert _replay_is_valid(state, check_safety(state).safe_sequence)

    def test_finds_a_safe_order_whenever_one_exists(self) -> None:
        """Greedy search agrees with exhaustive search."""
        for state in _random_states(seed=3):
            assert check_safety(state).is_safe == _some_safe_order_exists(state)

    def test_deadlocked_and_sequence_partition_processes(self) -> None:
        """Every process is either sequenced or deadlocked, never both."""
        for state in _random_states(seed=5):
            result = check_safety(state)
            assert set(result.safe_sequence).isdisjoint(result.deadlocked_processes)
            assert len(result.safe_sequence) + len(result.deadlocked_processes) == (
                state.num_processes
            )


# -- Step form -----------------------------------------------------------------


class TestStepSafety:
    """Verify one-decision-per-call stepping."""

    def test_first_step_selects_p1(self) -> None:
        """P1 is the lowest index whose Need fits Work=[3, 3, 2]."""
        result = step_safety(_safe_state())
        assert result.status is StepStatus.FOUND
        assert result.selected_process == 1
        assert result.step_state.work == (5, 3, 2)
        assert result.step_state.finish == (False, True, False, False, False)
        assert result.step_state.safe_sequence == (1,)

    def test_found_explanation(self) -> None:
        """The explanation shows the comparison and the new Work."""
        result = step_safety(_safe_state())
        assert result.explanation == (
            "Selected P1: Need(P1) [1, 2, 2] ≤ Work [3, 3, 2]; "
            "allocate resources, then release → Work = [5, 3, 2]. "
            "Add P1 to safe sequence."
        )

    def test_null_snapshot_means_fresh_start(self) -> None:
        """Passing None explicitly equals passing nothing."""
        assert step_safety(_safe_state(), None) == step_safety(_safe_state())

    def test_one_process_per_call(self) -> None:
        """Stepping picks P0 third, unlike the batch pass order."""
        results = run_steps(_safe_state())
        selected = [r.selected_process for r in results[:-1]]
        assert selected == [1, 3, 0, 2, 4]

    def test_done_status(self) -> None:
        """After everyone finishes the walkthrough reports DONE."""
        final = run_steps(_safe_state())[-1]
        assert final.status is StepStatus.DONE
        assert final.selected_process is None
        assert final.explanation == "All processes finished. Safe sequence: [P1, P3, P0, P2, P4]."

    def test_done_is_sticky(self) -> None:
        """Stepping past DONE keeps reporting DONE."""
        final = run_steps(_safe_state())[-1]
        again = step_safety(_safe_state(), final.step_state)
        assert again.status is StepStatus.DONE

    def test_deadlock_status(self) -> None:
        """A stuck state reports DEADLOCK with the unfinished processes."""
        result = step_safety(_deadlock_state())
        assert result.status is StepStatus.DEADLOCK
        assert result.deadlocked_processes == (0, 1, 2, 3)
        assert result.explanation == (
            "No process can be satisfied. "
            "Deadlocked processes: [P0, P1, P2, P3]. Work = [0, 0, 0]."
        )

    def test_partial_deadlock_after_progress(self) -> None:
        """Progress then DEADLOCK keeps the partial sequence."""
        results = run_steps(_partial_state())
        assert [r.status for r in results] == [
            StepStatus.FOUND,
            StepStatus.FOUND,
            StepStatus.DEADLOCK,
        ]
        assert results[-1].step_state.safe_sequence == (0, 1)
        assert results[-1].deadlocked_processes == (2,)

    def test_input_snapshot_untouched(self) -> None:
        """Stepping returns a new snapshot and leaves the old one alone."""
        start = StepState.initial(_safe_state())
        step_safety(_safe_state(), start)
        assert start == StepState.initial(_safe_state())

    def test_to_dict_omits_deadlocked_unless_deadlock(self) -> None:
        """deadlocked_processes only appears on DEADLOCK."""
        found = step_safety(_safe_state()).to_dict()
        stuck = step_safety(_deadlock_state()).to_dict()
        assert "deadlocked_processes" not in found
        assert found["status"] == "found"
        assert found["step_state"] == {
            "work": [5, 3, 2],
            "finish": [False, True, False, False, False],
            "safe_sequence": [1],
        }
        assert stuck["deadlocked_processes"] == [0, 1, 2, 3]


class TestStepBatchEquivalence:
    """Stepping to the end reaches the same verdict as the batch form."""

    def test_scenarios_agree(self) -> None:
        """Both built-in scenarios agree."""
        for scenario in SCENARIOS.values():
            batch = check_safety(scenario.state)
            final = run_steps(scenario.state)[-1]
            assert final.deadlocked_processes == batch.deadlocked_processes
            assert set(final.step_state.safe_sequence) == set(batch.safe_sequence)

    def test_random_states_agree(self) -> None:
        """Random states agree on deadlocked set and sequence membership."""
        for state in _random_states(seed=13):
            batch = check_safety(state)
            final = run_steps(state)[-1]
            assert (final.status is StepStatus.DEADLOCK) == batch.is_deadlocked
            assert final.deadlocked_processes == batch.deadlocked_processes
            assert set(final.step_state.safe_sequence) == set(batch.safe_sequence)


class TestStepStateFromDict:
    """Verify validation of snapshots sent back by callers."""

    def test_round_trip(self) -> None:
        """A snapshot survives to_dict / from_dict."""
        snapshot = step_safety(_safe_state()).step_state
        assert StepState.from_dict(snapshot.to_dict(), _safe_state()) == snapshot

    def test_not_an_object(self) -> None:
        """The snapshot must be an object."""
        with pytest.raises(ValidationError, match="object or null"):
            StepState.from_dict("nope", _safe_state())

    def test_wrong_work_length(self) -> None:
        """work must have R entries."""
        data = {"work": [1, 2], "finish": [False] * 5, "safe_sequence": []}
        with pytest.raises(ValidationError, match="step_state.work must be an array of 3"):
            StepState.from_dict(data, _safe_state())

    def test_negative_work(self) -> None:
        """work entries must be non-negative."""
        data = {"work": [1, -2, 0], "finish": [False] * 5, "safe_sequence": []}
        with pytest.raises(ValidationError, match=r"step_state.work\[1\]"):
            StepState.from_dict(data, _safe_state())

    def test_finish_must_be_booleans(self) -> None:
        """finish entries must be booleans, not ints."""
        data = {"work": [3, 3, 2], "finish": [0, 0, 0, 0, 0], "safe_sequence": []}
        with pytest.raises(ValidationError, match=r"step_state.finish\[0\] must be a boolean"):
            StepState.from_dict(data, _safe_state())

    def test_sequence_index_out_of_range(self) -> None:
        """safe_sequence entries must be process indices."""
        data = {"work": [3, 3, 2], "finish": [False] * 5, "safe_sequence": [5]}
        with pytest.raises(ValidationError, match=r"0\.\.4"):
            StepState.from_dict(data, _safe_state())


class TestStepSnapshotChecks:
    """Verify step_safety rejects snapshots built for a different state."""

    def test_short_work(self) -> None:
        """Work with too few entries is a validation error, not an IndexError."""
        snapshot = StepState(work=(1,), finish=(False,) * 5)
        with pytest.raises(ValidationError, match="step_state.work must be an array of 3"):
            step_safety(_safe_state(), snapshot)

    def test_short_finish(self) -> None:
        """Finish must have one flag per process."""
        snapshot = StepState(work=(3, 3, 2), finish=(False,))
        with pytest.raises(ValidationError, match="step_state.finish must be an array of 5"):
            step_safety(_safe_state(), snapshot)

    def test_snapshot_from_larger_state(self) -> None:
        """A snapshot taken on a bigger system does not fit a smaller one."""
        snapshot = step_safety(_safe_state()).step_state
        with pytest.raises(ValidationError, match="step_state.work must be an array of 1"):
            step_safety(_partial_state(), snapshot)

    def test_sequence_names_missing_process(self) -> None:
        """Sequence entries must be process indices of this state."""
        snapshot = StepState(work=(3, 3, 2), finish=(False,) * 5, safe_sequence=(9,))
        with pytest.raises(ValidationError, match=r"step_state.safe_sequence\[0\]"):
            step_safety(_safe_state(), snapshot)

    def test_negative_work(self) -> None:
        """Work entries must be non-negative integers."""
        snapshot = StepState(work=(3, -1, 2), finish=(False,) * 5)
        with pytest.raises(ValidationError, match=r"step_state.work\[1\]"):
            step_safety(_safe_state(), snapshot)

    def test_check_against_accepts_own_snapshot(self) -> None:
        """A snapshot produced by step_safety fits its own state."""
        snapshot = step_safety(_safe_state()).step_state
        snapshot.check_against(_safe_state())
