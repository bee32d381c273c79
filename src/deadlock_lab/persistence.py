"""State export and import — save a snapshot to JSON and load it back.

Exported files use the same wire format as the HTTP API, so a file
saved from the shell can be posted straight to ``/api/detect`` and
vice versa::

    {
      "num_processes": 2,
      "num_resources": 1,
      "available": [1],
      "allocation": [[1], [0]],
      "max_need": [[2], [1]]
    }

Loading always goes through ``SystemState.from_dict``, so a
hand-edited file with ``allocation > max_need`` is rejected instead of
producing nonsense results.
"""

import json
from pathlib import Path

from deadlock_lab.state import SystemState, ValidationError


def dumps_state(state: SystemState) -> str:
    """Serialise a state to an indented JSON string."""
    return json.dumps(state.to_dict(), indent=2)


def loads_state(text: str) -> SystemState:
    """Parse and validate a state from a JSON string.

    Raises:
        ValidationError: If the text is not JSON or not a valid state.

    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})"
        raise ValidationError(msg) from e
    return SystemState.from_dict(data)


def dump_state(state: SystemState, path: Path) -> None:
    """Save a state to a JSON file.

    Args:
        state: The snapshot to save.
        path: The file path to write to.

    """
    path.write_text(dumps_state(state), encoding="utf-8")


def load_state(path: Path) -> SystemState:
    """Load a state from a JSON file.

    Args:
        path: The file path to read from.

    Returns:
        The validated snapshot.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValidationError: If the file is not UTF-8 text or does not hold
            a valid state.

    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        msg = f"{path} is not a UTF-8 text file"
        raise ValidationError(msg) from e
    return loads_state(text)
