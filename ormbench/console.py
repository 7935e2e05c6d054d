"""
Console Reporter

Terminal output shared by the ``bin/`` scripts: colored status lines,
section headers and plain-text tables.
"""

import logging
import sys
from typing import Any, List, Optional, Sequence

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format=LOG_FORMAT,
    )


class ConsoleReporter:
    """Formatted terminal output; colors are dropped when not on a TTY."""

    def __init__(self, use_color: Optional[bool] = None):
        self.use_color = sys.stdout.isatty() if use_color is None else use_color

    def _color(self, text: str, color: str) -> str:
        if self.use_color:
            return f"{color}{text}{Colors.RESET}"
        return text

    def info(self, message: str) -> None:
        print(f"  {message}")

    def step(self, message: str) -> None:
        print(f"  {self._color('→', Colors.BLUE)} {message}")

    def success(self, message: str) -> None:
        print(f"  {self._color('✓', Colors.GREEN)} {message}")

    def warning(self, message: str) -> None:
        print(f"  {self._color('!', Colors.YELLOW)} {message}")

    def error(self, message: str) -> None:
        print(self._color(f"Error: {message}", Colors.RED), file=sys.stderr)

    def section(self, title: str) -> None:
        line = "=" * 60
        print()
        print(self._color(line, Colors.CYAN))
        print(self._color(f" {title}", Colors.CYAN + Colors.BOLD))
        print(self._color(line, Colors.CYAN))

    def table(self, headers: Sequence[str], rows: List[Sequence[Any]]) -> None:
        """Left-aligned columns sized to their widest cell."""
        if not headers or not rows:
            return
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], len(str(cell)))

        header_line = " | ".join(str(h).ljust(widths[i]) for i, h in enumerate(headers))
        print(self._color(header_line, Colors.BOLD))
        print("-" * len(header_line))
        for row in rows:
            print(" | ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)))
