import csv
import logging
import os
import time
from typing import Optional, TextIO

from river_monitor.exceptions import SinkClosedError
from river_monitor.models.domain import CSV_COLUMNS, IntervalResult

logger = logging.getLogger(__name__)


class CsvSink:
    """
    Append-only CSV output for one batch run.

    The header is written on open, so a run with no successful interval still
    leaves a valid file. Rows are flushed as they are written; ``close()`` may
    be called more than once but only closes the file the first time.
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.rows_written = 0
        self._file: Optional[TextIO] = open(file_path, "w", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._file, fieldnames=CSV_COLUMNS)
        self._writer.writeheader()
        self._file.flush()

    @classmethod
    def open(cls, directory: str, prefix: str) -> "CsvSink":
        """Create ``<directory>/<prefix>_<epoch millis>.csv``."""
        os.makedirs(directory, exist_ok=True)
        timestamp = int(time.time() * 1000)
        file_path = os.path.join(directory, f"{prefix}_{timestamp}.csv")
        logger.info(f"Writing batch results to {file_path}")
        return cls(file_path)

    @property
    def closed(self) -> bool:
        return self._file is None

    def write(self, result: IntervalResult) -> None:
        if self._file is None:
            raise SinkClosedError(f"CSV sink {self.file_path} is closed")
        self._writer.writerow(result.to_csv_row())
        self._file.flush()
        self.rows_written += 1

    def close(self) -> None:
        if self._file is None:
            return
        self._file.close()
        self._file = None
        logger.info(f"Closed {self.file_path} after {self.rows_written} rows")

    def __enter__(self) -> "CsvSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
