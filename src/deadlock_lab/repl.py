"""Terminal front end for the deadlock lab.

Builds a shell over a fresh workbench, prints a banner, then loops:
prompt, hand the line to ``Shell.execute``, print whatever comes back.
The loop ends on ``exit`` (the shell's sentinel), Ctrl+D or Ctrl+C.

Everything worth testing lives in the shell, which returns strings;
this module only moves those strings between the shell and the
terminal.
"""

import os
import readline

from deadlock_lab.completer import Completer
from deadlock_lab.env import Environment, load_environment, log_level
from deadlock_lab.logging import Logger
from deadlock_lab.shell import Shell
from deadlock_lab.workbench import Workbench

PROMPT = "deadlock-lab $ "

_BANNER_WIDTH = 44


def format_banner(env: Environment) -> str:
    """Return the start-up banner.

    Args:
        env: Configuration (the log level is shown in the banner).

    """
    border = "=" * _BANNER_WIDTH
    return (
        f"\n  {border}\n"
        "               Deadlock Lab\n"
        "    Banker's algorithm & allocation graphs\n"
        f"  {border}\n\n"
        f"  Audit log level: {log_level(env).name}\n"
        "  Type 'load safe' to start, 'help' for commands, 'exit' to quit.\n"
    )


def build_shell(env: Environment) -> Shell:
    """Create a shell whose workbench logs at the configured level."""
    workbench = Workbench(logger=Logger(min_level=log_level(env)))
    return Shell(workbench=workbench, env=env)


def run() -> None:
    """Run the interactive REPL.

    This is the ``deadlock-lab`` console entry point.  Ctrl+C and
    Ctrl+D both leave the loop cleanly.
    """
    env = load_environment(os.environ)
    shell = build_shell(env)

    # Tab completion; space is the only word delimiter.
    completer = Completer(shell)
    readline.set_completer(completer.complete)
    readline.set_completer_delims(" \t")
    readline.parse_and_bind("tab: complete")

    print(format_banner(env))  # noqa: T201

    try:
        while True:
            try:
                command = input(PROMPT)
            except EOFError:
                # Ctrl+D
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        # Ctrl+C
        print("\nInterrupted.")  # noqa: T201

    finally:
        print("Bye.")  # noqa: T201
