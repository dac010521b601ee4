"""File I/O primitives used by the file tools.

Text is read and written as UTF-8 without newline translation, so a write
followed by a read returns exactly what was written.
"""

from __future__ import annotations

from pathlib import Path

ENCODING = "utf-8"


def read_file(path: str | Path) -> str:
    """Read a UTF-8 text file.

    Raises:
        OSError: If the file cannot be opened or read
        UnicodeDecodeError: If the file is not valid UTF-8
    """
    with open(path, encoding=ENCODING, newline="") as f:
        return f.read()


def write_file(path: str | Path, content: str) -> None:
    """Write a UTF-8 text file, creating parent directories as needed.

    Raises:
        OSError: If a directory or the file cannot be created
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding=ENCODING, newline="") as f:
        f.write(content)
