from __future__ import annotations
"""Yes/no confirmation prompt."""
from typing import Callable

ReadLineFn = Callable[[str], str]
WriteFn = Callable[[str], None]

AFFIRMATIVE = frozenset({"y", "yes"})
NEGATIVE = frozenset({"n", "no"})


def confirm(message: str, *, read_line: ReadLineFn = input, write: WriteFn = print) -> bool:
    """Ask ``message`` until the operator answers yes or no.

    Unrecognized answers re-prompt. End of input counts as a decline.
    """
    while True:
        try:
            answer = read_line(f"{message} [y/n]: ")
        except EOFError:
            write("")
            return False
        normalized = answer.strip().lower()
        if normalized in AFFIRMATIVE:
            return True
        if normalized in NEGATIVE:
            return False
        write("Please answer 'yes' or 'no'.")
