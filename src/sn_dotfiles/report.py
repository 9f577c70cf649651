"""Human-readable result lines: ``<relative-path> | <status>``."""
import sys
from typing import Optional, Sequence, TextIO, Tuple

Row = Tuple[str, str]


def render_results(rows: Sequence[Row]) -> str:
    """Column-align result rows.

    Examples:
        >>> print(render_results([(".bashrc", "pushed"), (".config/nvim/init.vim", "pulled")]))
        .bashrc               | pushed
        .config/nvim/init.vim | pulled
    """
    if not rows:
        return ""
    width = max(len(path) for path, _ in rows)
    return "\n".join(f"{path.ljust(width)} | {status}" for path, status in rows)


def emit(rows: Sequence[Row], quiet: bool = False, stream: Optional[TextIO] = None) -> None:
    """Print rows unless ``quiet``."""
    if quiet or not rows:
        return
    print(render_results(rows), file=stream or sys.stdout)


def emit_message(message: str, quiet: bool = False, stream: Optional[TextIO] = None) -> None:
    if not quiet:
        print(message, file=stream or sys.stdout)


def count_row(path: str, count: int) -> str:
    """Label a path that matched more than one item."""
    if count > 1:
        return f"{path} ({count} instances)"
    return path
