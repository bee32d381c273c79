"""Safety engine — the Banker's safety algorithm, batch and step-by-step.

A state is **safe** if there is an order (a *safe sequence*) in which
every process can obtain its remaining need, run to completion, and
release what it holds.  The safety algorithm searches for such an
order greedily:

    1. work = copy of Available, finish = [False] * P
    2. Find an unfinished process whose Need <= Work
    3. Pretend it finishes: Work += its Allocation
    4. Repeat until no more can be found
    5. Anything still unfinished is **deadlocked**

Greedy is enough: finishing a process only ever *grows* Work, so
choosing one satisfiable process never blocks another.

Two forms share the same core:

**Batch** (``check_safety``):
    Sweep the processes in ascending index order, marking *every*
    satisfiable process during a pass, and repeat passes until a whole
    pass makes no progress.

**Step** (``step_safety``):
    Make exactly *one* decision per call — the first satisfiable
    process in index order — and hand back a ``StepState`` snapshot
    for the caller to pass into the next call.  This is the
    pedagogical walkthrough; it can pick a different (equally valid)
    order than the batch form, but always reaches the same verdict.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from deadlock_lab.state import ValidationError

if TYPE_CHECKING:
    from deadlock_lab.state import SystemState


def can_satisfy(need: Sequence[int], work: Sequence[int]) -> bool:
    """Return True if every component of *need* fits in *work*."""
    return all(n <= w for n, w in zip(need, work, strict=True))


def _labels(processes: Sequence[int]) -> str:
    return ", ".join(f"P{p}" for p in processes)


def _vector(values: Sequence[int]) -> str:
    return "[" + ", ".join(str(v) for v in values) + "]"


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of a safety check.

    Attributes:
        is_deadlocked: True if at least one process can never finish.
        deadlocked_processes: Unfinishable process indices, ascending.
        safe_sequence: Completion order found (partial when deadlocked).

    """

    is_deadlocked: bool
    deadlocked_processes: tuple[int, ...]
    safe_sequence: tuple[int, ...]

    @property
    def safe_sequence_length(self) -> int:
        """Return how many processes made it into the sequence."""
        return len(self.safe_sequence)

    @property
    def is_safe(self) -> bool:
        """Return True if every process can finish."""
        return not self.is_deadlocked

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format."""
        return {
            "is_deadlocked": self.is_deadlocked,
            "deadlocked_processes": list(self.deadlocked_processes),
            "safe_sequence": list(self.safe_sequence),
            "safe_sequence_length": self.safe_sequence_length,
        }


def check_safety(state: SystemState) -> DetectionResult:
    """Run the Banker's safety algorithm to completion.

    Processes are scanned in strict ascending index order within each
    pass; that order decides which safe sequence is reported when
    several exist.

    Args:
        state: The snapshot to analyse.

    Returns:
        The detection result: safe sequence or deadlocked processes.

    """
    need = state.need
    work = list(state.available)
    finish = [False] * state.num_processes
    sequence: list[int] = []

    changed = True
    while changed:
        changed = False
        for i in range(state.num_processes):
            if finish[i] or not can_satisfy(need[i], work):
                continue
            # Pretend it finishes: release its allocation
            for j, held in enumerate(state.allocation[i]):
                work[j] += held
            finish[i] = True
            sequence.append(i)
            changed = True

    deadlocked = tuple(i for i, done in enumerate(finish) if not done)
    return DetectionResult(
        is_deadlocked=bool(deadlocked),
        deadlocked_processes=deadlocked,
        safe_sequence=tuple(sequence),
    )


# -- Step-by-step form ---------------------------------------------------


class StepStatus(StrEnum):
    """What a single step of the safety loop found."""

    FOUND = "found"
    DONE = "done"
    DEADLOCK = "deadlock"


@dataclass(frozen=True)
class StepState:
    """Resumable snapshot of the safety loop.

    The caller owns this between calls and passes it back verbatim;
    nothing is remembered on the engine side.
    """

    work: tuple[int, ...]
    finish: tuple[bool, ...]
    safe_sequence: tuple[int, ...] = ()

    @classmethod
    def initial(cls, state: SystemState) -> StepState:
        """Return the starting snapshot: Work = Available, nothing finished."""
        return cls(
            work=state.available,
            finish=(False,) * state.num_processes,
            safe_sequence=(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format."""
        return {
            "work": list(self.work),
            "finish": list(self.finish),
            "safe_sequence": list(self.safe_sequence),
        }

    def check_against(self, state: SystemState) -> None:
        """Check that this snapshot fits *state*'s dimensions.

        Raises:
            ValidationError: If Work is not R non-negative integers,
                Finish is not P booleans, or the sequence names a
                process that does not exist.

        """
        _check_snapshot(self.work, self.finish, self.safe_sequence, state)

    @classmethod
    def from_dict(cls, data: object, state: SystemState) -> StepState:
        """Rebuild a snapshot sent back by a caller, checked against *state*.

        Raises:
            ValidationError: If the snapshot does not fit the state's
                dimensions or holds values of the wrong type.

        """
        if not isinstance(data, Mapping):
            msg = "step_state must be an object or null"
            raise ValidationError(msg)
        work, finish, sequence = data.get("work"), data.get("finish"), data.get("safe_sequence")
        _check_snapshot(work, finish, sequence, state)
        return cls(work=tuple(work), finish=tuple(finish), safe_sequence=tuple(sequence))


def _check_snapshot(work: object, finish: object, sequence: object, state: SystemState) -> None:
    processes, resources = state.num_processes, state.num_resources
    if not isinstance(work, list | tuple) or len(work) != resources:
        msg = f"step_state.work must be an array of {resources} numbers"
        raise ValidationError(msg)
    for j, w in enumerate(work):
        if not isinstance(w, int) or isinstance(w, bool) or w < 0:
            msg = f"step_state.work[{j}] must be a non-negative number"
            raise ValidationError(msg)

    if not isinstance(finish, list | tuple) or len(finish) != processes:
        msg = f"step_state.finish must be an array of {processes} booleans"
        raise ValidationError(msg)
    for i, f in enumerate(finish):
        if not isinstance(f, bool):
            msg = f"step_state.finish[{i}] must be a boolean"
            raise ValidationError(msg)

    if not isinstance(sequence, list | tuple):
        msg = "step_state.safe_sequence must be an array of numbers"
        raise ValidationError(msg)
    for k, p in enumerate(sequence):
        if not isinstance(p, int) or isinstance(p, bool) or not 0 <= p < processes:
            msg = f"step_state.safe_sequence[{k}] must be a process index (0..{processes - 1})"
            raise ValidationError(msg)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one step of the safety loop.

    Attributes:
        status: FOUND, DONE, or DEADLOCK.
        selected_process: The process chosen this step (FOUND only).
        explanation: Human-readable account of the comparison made.
        step_state: Snapshot to feed into the next call.
        deadlocked_processes: Stuck processes (DEADLOCK only).

    """

    status: StepStatus
    selected_process: int | None
    explanation: str
    step_state: StepState
    deadlocked_processes: tuple[int, ...] = field(default=())

    @property
    def is_terminal(self) -> bool:
        """Return True once the walkthrough has nothing left to do."""
        return self.status is not StepStatus.FOUND

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format."""
        data: dict[str, Any] = {
            "status": str(self.status),
            "selected_process": self.selected_process,
            "explanation": self.explanation,
            "step_state": self.step_state.to_dict(),
        }
        if self.status is StepStatus.DEADLOCK:
            data["deadlocked_processes"] = list(self.deadlocked_processes)
        return data


def step_safety(state: SystemState, step_state: StepState | None = None) -> StepResult:
    """Execute ONE iteration of the Banker's safety loop.

    Scan unfinished processes in index order for the first whose Need
    fits in Work.  If one is found, simulate its completion.  Otherwise
    report completion (everyone finished) or deadlock.

    Args:
        state: The snapshot under analysis (needed for Need/Allocation).
        step_state: The snapshot returned by the previous call, or None
            to start from the beginning.

    Returns:
        The step outcome, carrying the updated snapshot.

    Raises:
        ValidationError: If *step_state* does not fit *state*.

    """
    if step_state is None:
        current = StepState.initial(state)
    else:
        step_state.check_against(state)
        current = step_state
    need = state.need
    work = list(current.work)
    finish = list(current.finish)

    for i in range(state.num_processes):
        if finish[i] or not can_satisfy(need[i], work):
            continue
        before = tuple(work)
        for j, held in enumerate(state.allocation[i]):
            work[j] += held
        finish[i] = True
        sequence = (*current.safe_sequence, i)
        explanation = (
            f"Selected P{i}: Need(P{i}) {_vector(need[i])} ≤ Work {_vector(before)}; "
            f"allocate resources, then release → Work = {_vector(work)}. "
            f"Add P{i} to safe sequence."
        )
        return StepResult(
            status=StepStatus.FOUND,
            selected_process=i,
            explanation=explanation,
            step_state=StepState(tuple(work), tuple(finish), sequence),
        )

    unfinished = tuple(i for i, done in enumerate(finish) if not done)
    if not unfinished:
        return StepResult(
            status=StepStatus.DONE,
            selected_process=None,
            explanation=(
                f"All processes finished. Safe sequence: [{_labels(current.safe_sequence)}]."
            ),
            step_state=current,
        )

    return StepResult(
        status=StepStatus.DEADLOCK,
        selected_process=None,
        explanation=(
            "No process can be satisfied. "
            f"Deadlocked processes: [{_labels(unfinished)}]. "
            f"Work = {_vector(work)}."
        ),
        step_state=current,
        deadlocked_processes=unfinished,
    )


def run_steps(state: SystemState) -> list[StepResult]:
    """Step from a fresh start until DONE or DEADLOCK.

    Returns:
        Every step result in order; the last one is terminal.

    """
    results = [step_safety(state)]
    while not results[-1].is_terminal:
        results.append(step_safety(state, results[-1].step_state))
    return results
