"""Deadlock avoidance — dry-run admission control for a single request.

The Banker's algorithm is named after a banker who must decide whether
to grant a loan: if granting it might leave the bank unable to satisfy
every customer's credit line, the banker refuses.  For an operating
system the "loan" is a resource request:

    1. The request must fit what is currently Available.
    2. The request must fit the process's declared remaining Need.
    3. *Pretend* to grant it, and run the safety algorithm on the
       result.  Grant only if the pretend state is still safe.

Because ``SystemState`` is immutable, step 3 builds a scratch state and
simply drops it afterwards — there is nothing to roll back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from deadlock_lab.safety import check_safety
from deadlock_lab.state import SystemState, ValidationError

if TYPE_CHECKING:
    from deadlock_lab.state import Matrix

_EXCEEDS_NEED = "Request exceeds remaining need."
_EXCEEDS_AVAILABLE = "Request exceeds available resources."


@dataclass(frozen=True)
class SimulationResult:
    """Verdict on a hypothetical request.

    Attributes:
        granted: True if the request would be granted.
        is_safe: True if the resulting state is safe.
        message: Why the request would be granted or blocked.
        safe_sequence: The safe order found when granted.

    """

    granted: bool
    is_safe: bool
    message: str
    safe_sequence: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire format."""
        return {
            "granted": self.granted,
            "is_safe": self.is_safe,
            "message": self.message,
            "safe_sequence": list(self.safe_sequence),
        }


def _check_index(name: str, value: object, limit: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value < limit:
        msg = f"{name} must be an integer between 0 and {limit - 1}"
        raise ValidationError(msg)


def _with_request(state: SystemState, process: int, resource: int, amount: int) -> SystemState:
    """Return a scratch copy with the request applied."""
    available = list(state.available)
    available[resource] -= amount
    allocation: Matrix = tuple(
        tuple(
            held + amount if (i, j) == (process, resource) else held
            for j, held in enumerate(row)
        )
        for i, row in enumerate(state.allocation)
    )
    return SystemState(
        num_processes=state.num_processes,
        num_resources=state.num_resources,
        available=tuple(available),
        allocation=allocation,
        max_need=state.max_need,
    )


def simulate_request(
    state: SystemState,
    process_index: int,
    resource_index: int,
    amount: int,
) -> SimulationResult:
    """Decide whether granting a request would keep the system safe.

    Args:
        state: The current snapshot (never modified).
        process_index: The requesting process.
        resource_index: The requested resource type.
        amount: Number of instances requested (positive).

    Returns:
        The verdict.  ``granted`` is True iff the request fits Available
        and Need and the resulting state is safe.

    Raises:
        ValidationError: If an index is out of range or *amount* is not
            a positive integer.

    """
    _check_index("process_index", process_index, state.num_processes)
    _check_index("resource_index", resource_index, state.num_resources)
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        msg = "amount must be a positive integer"
        raise ValidationError(msg)

    if amount > state.available[resource_index]:
        return SimulationResult(granted=False, is_safe=False, message=_EXCEEDS_AVAILABLE)
    if amount > state.need_of(process_index)[resource_index]:
        return SimulationResult(granted=False, is_safe=False, message=_EXCEEDS_NEED)

    result = check_safety(_with_request(state, process_index, resource_index, amount))
    if result.is_safe:
        order = ", ".join(f"P{p}" for p in result.safe_sequence)
        return SimulationResult(
            granted=True,
            is_safe=True,
            message=f"Granting would keep the system safe. Safe sequence: [{order}].",
            safe_sequence=result.safe_sequence,
        )
    stuck = ", ".join(f"P{p}" for p in result.deadlocked_processes)
    return SimulationResult(
        granted=False,
        is_safe=False,
        message=(
            "Granting would lead to an unsafe state. "
            f"Processes that could not finish: [{stuck}]."
        ),
    )
