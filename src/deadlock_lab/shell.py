"""Command interpreter for the deadlock lab.

A command line is split on whitespace into a name and arguments; the
name is looked up in a table of ``_cmd_*`` methods, each of which
returns its output as a string instead of printing it.  The REPL, the
tests and any other caller decide where that text goes.

Engine errors (``ValidationError``, ``PreconditionError``) and bad
arguments are caught at the command boundary and reported as
``Error: …`` so one bad command never ends a session.
"""

from collections.abc import Callable
from pathlib import Path
from typing import TypeAlias

from deadlock_lab.display import (
    format_resolution,
    format_result,
    format_sequence,
    format_state,
)
from deadlock_lab.env import Environment, load_environment
from deadlock_lab.graph import format_graph
from deadlock_lab.logging import LogLevel
from deadlock_lab.resolution import PreconditionError
from deadlock_lab.scenarios import SCENARIOS
from deadlock_lab.state import ValidationError
from deadlock_lab.workbench import Workbench

_Handler: TypeAlias = Callable[[list[str]], str]

_SIMULATE_ARGS = 3


class _UsageError(Exception):
    """Raised by argument parsing; carries the text to show the user."""


def _parse_ints(args: list[str]) -> list[int]:
    try:
        return [int(a) for a in args]
    except ValueError:
        msg = f"expected integers, got: {' '.join(args)}"
        raise _UsageError(msg) from None


class Shell:
    """Command interpreter over a workbench session."""

    EXIT_SENTINEL = "__EXIT__"

    def __init__(
        self,
        *,
        workbench: Workbench | None = None,
        env: Environment | None = None,
    ) -> None:
        """Create a shell.

        Args:
            workbench: The session to operate on (a fresh one if omitted).
            env: Configuration shown by the ``config`` command (copied,
                so later changes by the caller are not seen).

        """
        self._workbench = workbench if workbench is not None else Workbench()
        self._env = env.copy() if env is not None else load_environment()
        self._history: list[str] = []

        # Command dispatch table: command name to handler method.
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "load": self._cmd_load,
            "new": self._cmd_new,
            "resize": self._cmd_resize,
            "available": self._cmd_available,
            "alloc": self._cmd_alloc,
            "max": self._cmd_max,
            "show": self._cmd_show,
            "detect": self._cmd_detect,
            "step": self._cmd_step,
            "walk": self._cmd_walk,
            "reset": self._cmd_reset,
            "resolve": self._cmd_resolve,
            "simulate": self._cmd_simulate,
            "rag": self._cmd_rag,
            "export": self._cmd_export,
            "import": self._cmd_import,
            "log": self._cmd_log,
            "config": self._cmd_config,
            "history": self._cmd_history,
            "exit": self._cmd_exit,
        }

    @property
    def workbench(self) -> Workbench:
        """Return the workbench this shell operates on."""
        return self._workbench

    @property
    def command_names(self) -> list[str]:
        """Return sorted list of all registered command names."""
        return sorted(self._commands)

    def execute(self, command: str) -> str:
        """Parse and execute a single command.

        Args:
            command: The raw command string (e.g. "simulate 0 1 2").

        Returns:
            The command output, an ``Error: …`` message, or
            ``EXIT_SENTINEL`` for ``exit``.

        """
        stripped = command.strip()
        if not stripped or stripped.startswith("#"):
            return ""
        self._history.append(stripped)

        name, *args = stripped.split()
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        try:
            return handler(args)
        except (_UsageError, ValidationError, PreconditionError, OSError) as e:
            return f"Error: {e}"
        except KeyError as e:
            return f"Error: {e.args[0]}"

    # -- commands --------------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(self.command_names)

    def _cmd_load(self, args: list[str]) -> str:
        """Load a sample scenario."""
        if not args:
            return f"Usage: load <{'|'.join(sorted(SCENARIOS))}>"
        self._workbench.load_scenario(args[0])
        return f"Loaded scenario '{args[0]}': {SCENARIOS[args[0]].description}"

    def _cmd_new(self, args: list[str]) -> str:
        """Start an all-zero state."""
        if len(args) != 2:  # noqa: PLR2004
            return "Usage: new <processes> <resources>"
        p, r = _parse_ints(args)
        self._workbench.new_state(p, r)
        return f"Created empty state: {p} processes, {r} resources"

    def _cmd_resize(self, args: list[str]) -> str:
        """Reshape the current state."""
        if len(args) != 2:  # noqa: PLR2004
            return "Usage: resize <processes> <resources>"
        p, r = _parse_ints(args)
        self._workbench.resize(p, r)
        return f"Resized to {p} processes, {r} resources"

    def _cmd_available(self, args: list[str]) -> str:
        """Set the Available vector."""
        if not args:
            return "Usage: available <n0> <n1> ..."
        self._workbench.set_available(_parse_ints(args))
        return ""

    def _cmd_alloc(self, args: list[str]) -> str:
        """Set one Allocation row."""
        if len(args) < 2:  # noqa: PLR2004
            return "Usage: alloc <process> <n0> <n1> ..."
        process, *row = _parse_ints(args)
        self._workbench.set_allocation(process, row)
        return ""

    def _cmd_max(self, args: list[str]) -> str:
        """Set one Max Need row."""
        if len(args) < 2:  # noqa: PLR2004
            return "Usage: max <process> <n0> <n1> ..."
        process, *row = _parse_ints(args)
        self._workbench.set_max_need(process, row)
        return ""

    def _cmd_show(self, _args: list[str]) -> str:
        """Show the current matrices."""
        return format_state(self._workbench.require_state())

    def _cmd_detect(self, _args: list[str]) -> str:
        """Run the batch safety check."""
        return format_result(self._workbench.detect())

    def _cmd_step(self, _args: list[str]) -> str:
        """Advance the walkthrough by one decision."""
        result = self._workbench.step()
        return f"[{result.status}] {result.explanation}"

    def _cmd_walk(self, _args: list[str]) -> str:
        """Step from the current point until done or deadlocked."""
        lines: list[str] = []
        while True:
            result = self._workbench.step()
            lines.append(f"[{result.status}] {result.explanation}")
            if result.is_terminal:
                break
        return "\n".join(lines)

    def _cmd_reset(self, _args: list[str]) -> str:
        """Restart the walkthrough."""
        self._workbench.reset_steps()
        return "Walkthrough reset."

    def _cmd_resolve(self, args: list[str]) -> str:
        """Terminate a victim (automatic, explicit, or until safe)."""
        before = self._workbench.require_state()
        if args and args[0] == "all":
            rounds = self._workbench.resolve_all()
            parts: list[str] = []
            for resolution in rounds:
                parts.append(format_resolution(resolution, before))
                before = resolution.state
            parts.append(f"Victims: {format_sequence([r.victim for r in rounds])}")
            return "\n\n".join(parts)
        victim = _parse_ints(args[:1])[0] if args else None
        return format_resolution(self._workbench.resolve(victim), before)

    def _cmd_simulate(self, args: list[str]) -> str:
        """Dry-run a resource request."""
        if len(args) != _SIMULATE_ARGS:
            return "Usage: simulate <process> <resource> <amount>"
        process, resource, amount = _parse_ints(args)
        result = self._workbench.simulate(process, resource, amount)
        verdict = "Would GRANT (safe)" if result.granted else "Would BLOCK (unsafe)"
        return f"{verdict}: {result.message}"

    def _cmd_rag(self, _args: list[str]) -> str:
        """Show the resource allocation graph."""
        return format_graph(self._workbench.graph())

    def _cmd_export(self, args: list[str]) -> str:
        """Save the current state to a JSON file."""
        if not args:
            return "Usage: export <path>"
        self._workbench.export(Path(args[0]))
        return f"Exported to {args[0]}"

    def _cmd_import(self, args: list[str]) -> str:
        """Load a state from a JSON file."""
        if not args:
            return "Usage: import <path>"
        state = self._workbench.import_(Path(args[0]))
        return f"Imported {state.num_processes} processes, {state.num_resources} resources"

    def _cmd_log(self, args: list[str]) -> str:
        """Show the audit log, optionally from a minimum level up."""
        min_level = None
        if args:
            name = args[0].upper()
            if name not in LogLevel.__members__:
                return f"Usage: log [{'|'.join(level.name.lower() for level in LogLevel)}]"
            min_level = LogLevel[name]
        entries = self._workbench.logger.filter(min_level=min_level)
        return "\n".join(str(e) for e in entries) if entries else "(log is empty)"

    def _cmd_config(self, args: list[str]) -> str:
        """Show the configuration, or a single KEY of it."""
        if args:
            key = args[0].upper()
            if key not in self._env:
                return f"Error: {key} is not set"
            return f"{key}={self._env.get(key)}"
        return "\n".join(f"{key}={value}" for key, value in self._env.items())

    def _cmd_history(self, _args: list[str]) -> str:
        """Show command history."""
        return "\n".join(f"{n:>4}  {cmd}" for n, cmd in enumerate(self._history, start=1))

    def _cmd_exit(self, _args: list[str]) -> str:
        """Leave the shell."""
        return self.EXIT_SENTINEL

