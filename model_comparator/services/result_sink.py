# model_comparator/services/result_sink.py
from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import List, Optional, TextIO

from ..shared.schemas import TaskOutcome

LOG = logging.getLogger("model_comparator.sink")

HEADER = ["image_file", "model", "elapsed", "response"]


def _normalize_newlines(value: str) -> str:
    return str(value).replace("\r\n", "\n").replace("\r", "\n")


class CsvResultSink:
    """
    Append-only CSV, one row per task outcome.
    - utf-8 with BOM so spreadsheet apps pick the right encoding
    - header written on first use of an empty file
    - every row is flushed and fsync'd on its own, so a crash keeps finished rows
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._fh: Optional[TextIO] = None
        self._writer = None
        self.rows_written = 0

    def open(self) -> "CsvResultSink":
        if self._fh is not None:
            return self
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fresh = not self.path.exists() or self.path.stat().st_size == 0
        self._fh = self.path.open("a", encoding="utf-8-sig" if fresh else "utf-8", newline="")
        self._writer = csv.writer(self._fh, lineterminator="\n")
        if fresh:
            self._write_row(HEADER)
        return self

    def _write_row(self, row: List[str]) -> None:
        assert self._fh is not None and self._writer is not None
        self._writer.writerow([_normalize_newlines(v) for v in row])
        self._fh.flush()
        os.fsync(self._fh.fileno())

    def append(self, outcome: TaskOutcome) -> None:
        self.open()
        self._write_row(outcome.to_row())
        self.rows_written += 1
        LOG.debug("Row %d written: %s / %s", self.rows_written, outcome.asset, outcome.model_name)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
        self._fh = None
        self._writer = None

    def __enter__(self) -> "CsvResultSink":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()
