"""Built-in sample scenarios.

Two classroom examples ship with the lab so there is always something
to analyse before a user types in their own matrices:

- ``safe`` — the classic textbook Banker's instance (5 processes,
  3 resource types).  Safe sequence: P1 → P3 → P4 → P0 → P2.
- ``deadlock`` — a circular wait with nothing available (4 processes,
  3 resource types).  Every process is stuck.
"""

from dataclasses import dataclass

from deadlock_lab.state import SystemState


@dataclass(frozen=True)
class Scenario:
    """A named, described sample state."""

    name: str
    description: str
    state: SystemState


SCENARIOS: dict[str, Scenario] = {
    "safe": Scenario(
        name="safe",
        description="Classic Banker's safe example — 5 processes, 3 resources",
        state=SystemState(
            num_processes=5,
            num_resources=3,
            available=(3, 3, 2),
            allocation=((0, 1, 0), (2, 0, 0), (3, 0, 2), (2, 1, 1), (0, 0, 2)),
            max_need=((7, 5, 3), (3, 2, 2), (9, 0, 2), (2, 2, 2), (4, 3, 3)),
        ),
    ),
    "deadlock": Scenario(
        name="deadlock",
        description="Circular wait deadlock — 4 processes, 3 resources, 0 available",
        state=SystemState(
            num_processes=4,
            num_resources=3,
            available=(0, 0, 0),
            allocation=((1, 0, 1), (1, 1, 0), (0, 1, 1), (1, 0, 0)),
            max_need=((2, 1, 2), (2, 2, 1), (1, 2, 2), (2, 1, 1)),
        ),
    ),
}


def get_scenario(name: str) -> Scenario:
    """Return the scenario called *name*.

    Raises:
        KeyError: If no scenario has that name.

    """
    try:
        return SCENARIOS[name]
    except KeyError:
        msg = f"Unknown scenario '{name}' (choose from: {', '.join(sorted(SCENARIOS))})"
        raise KeyError(msg) from None
