"""Tab completion for the deadlock-lab shell.

Candidate selection is plain string logic in ``completions(text,
line)`` so it can be tested without a terminal.  ``complete(text,
state)`` is the thin adapter readline calls repeatedly with state 0, 1,
2… until it gets ``None``.

Two things are completed: the command name (first word), and a fixed
keyword for the commands that take one as their first argument
(scenario names for ``load``, ``all`` for ``resolve``, level names for
``log``).
"""

from __future__ import annotations

import readline
from typing import TYPE_CHECKING

from deadlock_lab.logging import LogLevel
from deadlock_lab.scenarios import SCENARIOS

if TYPE_CHECKING:
    from deadlock_lab.shell import Shell

_KEYWORDS: dict[str, list[str]] = {
    "load": sorted(SCENARIOS),
    "resolve": ["all"],
    "log": [level.name.lower() for level in LogLevel],
}


class Completer:
    """Suggests command names and first-argument keywords."""

    def __init__(self, shell: Shell) -> None:
        """Attach to *shell*, whose command table supplies the names."""
        self._shell = shell

    def complete(self, text: str, state: int) -> str | None:
        """Return the *state*-th suggestion for *text*, or None when done."""
        suggestions = self.completions(text, readline.get_line_buffer())
        return suggestions[state] if state < len(suggestions) else None

    def completions(self, text: str, line: str) -> list[str]:
        """Return every suggestion for the word being typed.

        Args:
            text: The word under the cursor (possibly empty).
            line: Everything typed on the line so far.

        Returns:
            Matching suggestions, sorted.

        """
        words = line.split()
        finished_words = len(words) if line.endswith(" ") else len(words) - 1

        if finished_words <= 0:
            return [name for name in self._shell.command_names if name.startswith(text)]
        if finished_words == 1 and words[0] in _KEYWORDS:
            return sorted(word for word in _KEYWORDS[words[0]] if word.startswith(text))
        return []
