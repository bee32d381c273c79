"""Deadlock resolution by process termination.

Once the safety check reports a deadlock, the system cannot make
progress on its own — somebody has to give something up.  The classic
recovery options are:

    - **Preemption** — take resources away and give them back later.
    - **Rollback** — restart a process from a checkpoint.
    - **Termination** — kill a process and reclaim everything it holds.

We model **termination**: the victim's allocation is returned to the
Available pool and its claim on future resources (its Max Need row) is
revoked entirely, not merely reduced.

Victim selection picks the deadlocked process holding the *fewest*
resource units in total — the cheapest one to throw away.  Ties go to
the lowest index.  A caller may also name the victim explicitly, as
long as it is one of the deadlocked processes.

One termination is not always enough; ``resolve_until_safe`` keeps
terminating until the safety check passes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from deadlock_lab.safety import DetectionResult, check_safety
from deadlock_lab.state import SystemState

if TYPE_CHECKING:
    from collections.abc import Sequence


class PreconditionError(Exception):
    """Raise when an operation does not apply to the given state."""


class InvalidVictimError(PreconditionError):
    """Raise when the requested victim is not a deadlocked process."""


@dataclass(frozen=True)
class Resolution:
    """The outcome of terminating one victim.

    Attributes:
        state: The new snapshot after termination.
        result: The safety check re-run on the new snapshot.
        victim: Index of the terminated process.

    """

    state: SystemState
    result: DetectionResult
    victim: int

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format."""
        return {
            "state": self.state.to_dict(),
            "result": self.result.to_dict(),
            "victim_process": self.victim,
        }


def select_victim(state: SystemState, deadlocked: Sequence[int]) -> int:
    """Pick the deadlocked process with the smallest total allocation.

    Later candidates only replace the current choice on a strictly
    smaller total, so ties resolve to the lowest index.

    Raises:
        PreconditionError: If *deadlocked* is empty.

    """
    if not deadlocked:
        msg = "No deadlocked processes to choose a victim from."
        raise PreconditionError(msg)
    victim = deadlocked[0]
    lowest = state.total_allocation(victim)
    for proc in deadlocked[1:]:
        total = state.total_allocation(proc)
        if total < lowest:
            lowest = total
            victim = proc
    return victim


def terminate(state: SystemState, victim: int) -> SystemState:
    """Return the state after *victim* is terminated.

    The victim's allocation is added back to Available; its Allocation
    and Max Need rows become zero.  Every other row is unchanged.
    """
    zeros = (0,) * state.num_resources
    return SystemState(
        num_processes=state.num_processes,
        num_resources=state.num_resources,
        available=tuple(
            a + held for a, held in zip(state.available, state.allocation[victim], strict=True)
        ),
        allocation=tuple(
            zeros if i == victim else row for i, row in enumerate(state.allocation)
        ),
        max_need=tuple(zeros if i == victim else row for i, row in enumerate(state.max_need)),
    )


def resolve_deadlock(state: SystemState, victim: int | None = None) -> Resolution:
    """Break a deadlock by terminating one process.

    Args:
        state: A deadlocked snapshot.
        victim: Process to terminate, or None to choose automatically.

    Returns:
        The new state, its safety result, and the victim's index.

    Raises:
        PreconditionError: If *state* is not deadlocked.
        InvalidVictimError: If *victim* is given but is not deadlocked.

    """
    detection = check_safety(state)
    if not detection.is_deadlocked or not detection.deadlocked_processes:
        msg = "State is not deadlocked; resolution not applicable."
        raise PreconditionError(msg)

    deadlocked = detection.deadlocked_processes
    if victim is None:
        victim = select_victim(state, deadlocked)
    elif victim not in deadlocked:
        choices = ", ".join(str(p) for p in deadlocked)
        msg = f"victim_process_index must be a deadlocked process index (one of [{choices}])."
        raise InvalidVictimError(msg)

    new_state = terminate(state, victim)
    return Resolution(state=new_state, result=check_safety(new_state), victim=victim)


def resolve_until_safe(state: SystemState) -> list[Resolution]:
    """Terminate automatically chosen victims until the state is safe.

    Each round zeroes one deadlocked row, so at most P rounds run.

    Returns:
        Every resolution in order; the last one's result is safe.

    Raises:
        PreconditionError: If *state* is not deadlocked to begin with.

    """
    rounds = [resolve_deadlock(state)]
    while rounds[-1].result.is_deadlocked:
        rounds.append(resolve_deadlock(rounds[-1].state))
    return rounds
