"""
Console and log-file output shared by the CLI and the worker threads.

Each call renders its whole block (one line, a section banner or a table)
first and then writes it under a single lock, so blocks from different
threads never interleave.
"""

from __future__ import annotations

import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

RULE_WIDTH = 60


class SimpleLogger:
    """Timestamped logger writing to the console and an optional log file."""

    def __init__(
        self,
        log_file: Optional[Path] = None,
        *,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        quiet: bool = False,
    ):
        self.log_file = log_file
        self.quiet = quiet
        self.start_time = time.time()
        self._stdout = stdout
        self._stderr = stderr
        self._lock = threading.Lock()

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            banner = "=" * RULE_WIDTH
            self._append_to_file([banner, f"Session started: {datetime.now().isoformat()}", banner], leading_blank=True)

    def _append_to_file(self, lines: Iterable[str], leading_blank: bool = False) -> None:
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                if leading_blank:
                    f.write("\n")
                for line in lines:
                    f.write(line + "\n")
        except OSError:
            pass  # log file errors are not fatal

    def _emit(self, lines: List[str], error: bool = False) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        stamped = [f"[{stamp}] {line}" for line in lines]

        with self._lock:
            if not self.quiet:
                stream = (self._stderr or sys.stderr) if error else (self._stdout or sys.stdout)
                for line in stamped:
                    print(line, file=stream)
                stream.flush()
            if self.log_file:
                self._append_to_file(stamped)

    def log(self, message: str, prefix: str = "", error: bool = False) -> None:
        """Write one line.

        Args:
            message: Text of the line
            prefix: Tag such as [INFO] placed after the timestamp
            error: Send the console copy to stderr
        """
        self._emit([f"{prefix} {message}" if prefix else message], error=error)

    def progress(self, current: int, total: int, description: str = "") -> None:
        """Write a `[current/total] (pct%)` line with the elapsed time."""
        percent = current / total * 100 if total > 0 else 0.0
        elapsed = time.time() - self.start_time
        label = f" {description} -" if description else " -"
        self.log(f"[{current}/{total}] ({percent:.1f}%){label} {elapsed:.1f}s elapsed")

    def table(self, headers: List[str], rows: List[List[str]]) -> None:
        """Write an ASCII table; nothing is written when there are no rows."""
        if not headers or not rows:
            return

        cells = [[str(c) for c in row[: len(headers)]] for row in rows]
        widths = [max([len(h)] + [len(row[i]) for row in cells if i < len(row)]) for i, h in enumerate(headers)]

        def render(values: List[str]) -> str:
            return "|" + "|".join(f" {v:<{w}} " for v, w in zip(values, widths)) + "|"

        rule = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
        self._emit([rule, render(headers), rule, *(render(row) for row in cells), rule])

    def section(self, title: str) -> None:
        """Write a centered title between two rules."""
        rule = "=" * RULE_WIDTH
        self._emit(["", rule, title.center(RULE_WIDTH), rule])

    def success(self, message: str) -> None:
        self.log(message, prefix="[SUCCESS]")

    def error(self, message: str) -> None:
        self.log(message, prefix="[ERROR]", error=True)

    def warning(self, message: str) -> None:
        self.log(message, prefix="[WARNING]")

    def info(self, message: str) -> None:
        self.log(message, prefix="[INFO]")
