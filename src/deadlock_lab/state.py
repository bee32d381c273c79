"""System state — the snapshot every analysis operates on.

A **resource-allocation snapshot** captures everything the Banker's
algorithm needs to reason about a system at one instant:

    - **Available[r]** — free instances of resource r.
    - **Allocation[p][r]** — instances process p currently holds.
    - **Max Need[p][r]** — the most instances p may ever hold.
    - **Need[p][r]** — Max Need - Allocation (remaining demand).

Need is *derived*, never stored: it is recomputed from the other two
matrices whenever it is asked for, so it can never drift out of sync.

Design choices:
    - **Frozen dataclass with tuples.**  A snapshot is a value.  Every
      operation that "changes" the system (terminating a victim,
      simulating a request) builds a *new* ``SystemState``; the
      original is never touched.
    - **Validate on construction.**  ``allocation <= max_need`` and the
      1..10 bounds are construction-time invariants.  An invalid
      snapshot cannot exist, so the algorithms never re-check.
    - **Wire format lives here.**  ``to_dict`` / ``from_dict`` use the
      snake_case keys the HTTP service and export files share.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

MAX_PROCESSES = 10
MAX_RESOURCES = 10

_STATE_KEYS = ("num_processes", "num_resources", "available", "allocation", "max_need")

Vector: TypeAlias = tuple[int, ...]
Matrix: TypeAlias = tuple[Vector, ...]


class ValidationError(ValueError):
    """Raise when a state, snapshot, or parameter is malformed or out of range."""


def _is_int(value: object) -> bool:
    """Return True for real integers (``bool`` does not count)."""
    return isinstance(value, int) and not isinstance(value, bool)


def _check_count(name: str, value: object, limit: int) -> None:
    if not _is_int(value) or not 1 <= value <= limit:  # type: ignore[operator]
        msg = f"{name} must be an integer between 1 and {limit}"
        raise ValidationError(msg)


def _check_vector(name: str, values: object, length: int) -> Vector:
    """Validate a length-*length* vector of non-negative integers."""
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        msg = f"{name} must be an array of {length} numbers"
        raise ValidationError(msg)
    if len(values) != length:
        msg = f"{name} must be an array of {length} numbers"
        raise ValidationError(msg)
    for j, value in enumerate(values):
        if not _is_int(value) or value < 0:
            msg = f"{name}[{j}] must be a non-negative integer"
            raise ValidationError(msg)
    return tuple(values)


def _check_matrix(name: str, rows: object, num_rows: int, num_cols: int) -> Matrix:
    """Validate a *num_rows* x *num_cols* matrix of non-negative integers."""
    if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence) or len(rows) != num_rows:
        msg = f"{name} must be a {num_rows}x{num_cols} matrix"
        raise ValidationError(msg)
    return tuple(_check_vector(f"{name}[{i}]", row, num_cols) for i, row in enumerate(rows))


@dataclass(frozen=True)
class SystemState:
    """An immutable process/resource snapshot.

    Attributes:
        num_processes: Number of processes P (1..10).
        num_resources: Number of resource types R (1..10).
        available: Length-R vector of free instances.
        allocation: PxR matrix of held instances.
        max_need: PxR matrix of declared maximums.

    """

    num_processes: int
    num_resources: int
    available: Vector
    allocation: Matrix
    max_need: Matrix

    def __post_init__(self) -> None:
        """Validate every field and normalise lists to tuples.

        Raises:
            ValidationError: On the first violation found.

        """
        _check_count("num_processes", self.num_processes, MAX_PROCESSES)
        _check_count("num_resources", self.num_resources, MAX_RESOURCES)
        p, r = self.num_processes, self.num_resources
        available = _check_vector("available", self.available, r)
        allocation = _check_matrix("allocation", self.allocation, p, r)
        max_need = _check_matrix("max_need", self.max_need, p, r)
        for i in range(p):
            for j in range(r):
                if allocation[i][j] > max_need[i][j]:
                    msg = f"allocation[{i}][{j}] cannot exceed max_need[{i}][{j}]"
                    raise ValidationError(msg)
        # Frozen: bypass __setattr__ to store the normalised tuples.
        object.__setattr__(self, "available", available)
        object.__setattr__(self, "allocation", allocation)
        object.__setattr__(self, "max_need", max_need)

    # -- derived values --------------------------------------------------

    @property
    def need(self) -> Matrix:
        """Return the Need matrix (Max Need - Allocation)."""
        return tuple(self.need_of(i) for i in range(self.num_processes))

    def need_of(self, process: int) -> Vector:
        """Return the remaining need of one process."""
        return tuple(
            m - a for m, a in zip(self.max_need[process], self.allocation[process], strict=True)
        )

    def total_allocation(self, process: int) -> int:
        """Return the total number of instances *process* holds."""
        return sum(self.allocation[process])

    @staticmethod
    def process_label(process: int) -> str:
        """Return the display name of a process (``P0``, ``P1``…)."""
        return f"P{process}"

    @staticmethod
    def resource_label(resource: int) -> str:
        """Return the display name of a resource type (``R0``, ``R1``…)."""
        return f"R{resource}"

    # -- constructors ----------------------------------------------------

    @classmethod
    def empty(cls, num_processes: int, num_resources: int) -> SystemState:
        """Create an all-zero state of the given shape."""
        _check_count("num_processes", num_processes, MAX_PROCESSES)
        _check_count("num_resources", num_resources, MAX_RESOURCES)
        zeros = tuple((0,) * num_resources for _ in range(num_processes))
        return cls(
            num_processes=num_processes,
            num_resources=num_resources,
            available=(0,) * num_resources,
            allocation=zeros,
            max_need=zeros,
        )

    def resized(self, num_processes: int, num_resources: int) -> SystemState:
        """Return a state reshaped to *num_processes* x *num_resources*.

        Cells that exist in both shapes keep their values; new cells
        are zero.  The current state is left unchanged.

        Args:
            num_processes: New process count (1..10).
            num_resources: New resource-type count (1..10).

        Returns:
            A new, validated state.

        """
        base = SystemState.empty(num_processes, num_resources)

        def reshape(old: Matrix) -> list[list[int]]:
            rows = [list(row) for row in base.allocation]
            for i in range(min(num_processes, self.num_processes)):
                for j in range(min(num_resources, self.num_resources)):
                    rows[i][j] = old[i][j]
            return rows

        available = list(base.available)
        for j in range(min(num_resources, self.num_resources)):
            available[j] = self.available[j]
        return SystemState(
            num_processes=num_processes,
            num_resources=num_resources,
            available=tuple(available),
            allocation=tuple(map(tuple, reshape(self.allocation))),
            max_need=tuple(map(tuple, reshape(self.max_need))),
        )

    def with_available(self, values: Sequence[int]) -> SystemState:
        """Return a copy with a new Available vector."""
        return SystemState(
            num_processes=self.num_processes,
            num_resources=self.num_resources,
            available=tuple(values),
            allocation=self.allocation,
            max_need=self.max_need,
        )

    def with_allocation_row(self, process: int, row: Sequence[int]) -> SystemState:
        """Return a copy with one Allocation row replaced."""
        return SystemState(
            num_processes=self.num_processes,
            num_resources=self.num_resources,
            available=self.available,
            allocation=_replace_row(self.allocation, process, row, "allocation"),
            max_need=self.max_need,
        )

    def with_max_need_row(self, process: int, row: Sequence[int]) -> SystemState:
        """Return a copy with one Max Need row replaced."""
        return SystemState(
            num_processes=self.num_processes,
            num_resources=self.num_resources,
            available=self.available,
            allocation=self.allocation,
            max_need=_replace_row(self.max_need, process, row, "max_need"),
        )

    # -- wire format -----------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON-friendly wire format."""
        return {
            "num_processes": self.num_processes,
            "num_resources": self.num_resources,
            "available": list(self.available),
            "allocation": [list(row) for row in self.allocation],
            "max_need": [list(row) for row in self.max_need],
        }

    @classmethod
    def from_dict(cls, data: object) -> SystemState:
        """Build a validated state from the wire format.

        Extra keys (``step_state``, ``amount``…) are ignored so a whole
        request body can be passed straight in.

        Raises:
            ValidationError: If *data* is not a mapping, a key is
                missing, or any field is invalid.

        """
        if not isinstance(data, Mapping):
            msg = "Request body must be a JSON object"
            raise ValidationError(msg)
        for key in _STATE_KEYS:
            if key not in data:
                msg = f"missing field: {key}"
                raise ValidationError(msg)
        return cls(
            num_processes=data["num_processes"],
            num_resources=data["num_resources"],
            available=data["available"],
            allocation=data["allocation"],
            max_need=data["max_need"],
        )


def _replace_row(matrix: Matrix, process: int, row: Sequence[int], name: str) -> Matrix:
    if not _is_int(process) or not 0 <= process < len(matrix):
        msg = f"{name} row index must be between 0 and {len(matrix) - 1}"
        raise ValidationError(msg)
    return tuple(tuple(row) if i == process else old for i, old in enumerate(matrix))
