"""
File Utils
==========
Small filesystem helpers shared by the layers model and the contributor.

Errors are not caught here: a failed write surfaces to the caller as the
original OSError.
"""
import os


def write_file(path: str, content: str, mode: int = 0o644) -> None:
    """Write ``content`` to ``path``, creating parent directories first."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    os.chmod(path, mode)


def read_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()
