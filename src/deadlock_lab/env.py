"""Runtime configuration as environment-style key/value pairs.

Configuration is a flat set of ``KEY=VALUE`` strings, the way a Unix
process sees its environment.  Defaults are overlaid with any
variables named ``DEADLOCK_LAB_<KEY>`` from the real OS environment:

    ``DEADLOCK_LAB_PORT=9000 deadlock-lab-web``

Recognised keys:
    - ``HOST`` — interface the web service binds to.
    - ``PORT`` — port the web service listens on.
    - ``DEBUG`` — Flask debug mode (``true`` / ``false``).
    - ``LOG_LEVEL`` — minimum audit-log level (DEBUG, INFO, WARNING, ERROR).

Key design properties:
    - **Strings only** — values are parsed at the point of use
      (``get_int``, ``get_bool``), never stored typed.
    - **Copy semantics** — ``copy()`` returns an independent store.
"""

from collections.abc import Mapping

from deadlock_lab.logging import LogLevel

PREFIX = "DEADLOCK_LAB_"

DEFAULTS: dict[str, str] = {
    "HOST": "127.0.0.1",
    "PORT": "8080",
    "DEBUG": "false",
    "LOG_LEVEL": "INFO",
}

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


class Environment:
    """A key-value store for configuration variables."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Create an environment, optionally pre-populated.

        Args:
            initial: Starting variables (copied, not referenced).

        """
        self._vars: dict[str, str] = dict(initial) if initial else {}

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for *key*, or *default* if not set."""
        return self._vars.get(key, default)

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value* (creates or overwrites)."""
        self._vars[key] = value

    def items(self) -> list[tuple[str, str]]:
        """Return all (key, value) pairs, sorted by key."""
        return sorted(self._vars.items())

    def copy(self) -> "Environment":
        """Return an independent copy of this environment."""
        return Environment(initial=self._vars)

    def get_int(self, key: str) -> int:
        """Return *key* parsed as an integer.

        Raises:
            KeyError: If *key* is not set.
            ValueError: If the value is not an integer.

        """
        value = self._vars[key]
        try:
            return int(value)
        except ValueError:
            msg = f"{key} must be an integer, got '{value}'"
            raise ValueError(msg) from None

    def get_bool(self, key: str) -> bool:
        """Return *key* parsed as a boolean flag.

        Raises:
            KeyError: If *key* is not set.
            ValueError: If the value is not a recognised flag.

        """
        value = self._vars[key].strip().lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        msg = f"{key} must be a boolean flag, got '{self._vars[key]}'"
        raise ValueError(msg)

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)

    def __contains__(self, key: object) -> bool:
        """Return True if *key* is set."""
        return key in self._vars


def load_environment(environ: Mapping[str, str] | None = None) -> Environment:
    """Build the configuration from defaults plus prefixed variables.

    Args:
        environ: The process environment (``os.environ``).  None means
            defaults only.

    Returns:
        A new Environment.

    """
    env = Environment(initial=DEFAULTS)
    for key, value in (environ or {}).items():
        if key.startswith(PREFIX) and len(key) > len(PREFIX):
            env.set(key.removeprefix(PREFIX), value)
    return env


def log_level(env: Environment) -> LogLevel:
    """Return the configured ``LOG_LEVEL`` as a ``LogLevel``.

    Raises:
        ValueError: If the name is not a known level.

    """
    name = (env.get("LOG_LEVEL") or DEFAULTS["LOG_LEVEL"]).strip().upper()
    try:
        return LogLevel[name]
    except KeyError:
        levels = ", ".join(level.name for level in LogLevel)
        msg = f"LOG_LEVEL must be one of {levels}, got '{name}'"
        raise ValueError(msg) from None
