"""
silib.text — Presentation helpers for console output and values files.
"""

import re
import sys
from pathlib import Path
from typing import Union

import utils

_UPPER_SNAKE = re.compile(r"^[A-Z_]+$")


def print_err(message: str) -> None:
    """Print a message to stderr."""
    print(message, file=sys.stderr)


def warning(message: str) -> None:
    """Print a warning in red to stderr."""
    utils.print_color(f"!!!WARNING!!! {message}", utils.RED, stream=sys.stderr)


def indent(text: str, level: int) -> str:
    """
    Indent every line of text by ``level`` two-space steps.

    Blank lines are left empty rather than padded.
    """
    prefix = " " * (level * 2)
    lines = []
    for line in text.splitlines(keepends=True):
        if line.strip():
            lines.append(prefix + line)
        else:
            lines.append("\n" if line.endswith("\n") else "")
    return "".join(lines)


def newline() -> str:
    return "\n"


def camel_case(value: str) -> str:
    """
    Convert CAMEL_CASE to CamelCase.

    Anything not made only of capitals and underscores is returned unchanged.
    """
    if not _UPPER_SNAKE.match(value):
        return value
    return "".join(part[:1].upper() + part[1:].lower() for part in value.split("_"))


def delete_blanks(input_file: Union[str, Path]) -> None:
    """
    Delete trailing blank lines from a generated values file.

    The file is left ending in exactly one newline (or empty if it held
    only blank lines).
    """
    path = Path(input_file)
    lines = path.read_text(encoding="utf-8").splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
