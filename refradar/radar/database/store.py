# radar/database/store.py

import csv
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from colorama import Fore

from radar.core.models import JobRow, RowResult
from radar.database.db_utils import JOBS_TABLE, ensure_jobs_table, get_conn
from radar.logger import ColorLogger

log = ColorLogger("STORE", tag_color=Fore.BLUE, include_timestamps=False)

CSV_COLUMNS = ["doi", "status", "reason", "refs_evaluated", "retracted_dois"]
LIST_SEPARATOR = ";"


class JobStore(ABC):
    """
    Caller-owned table of DOIs to screen.

    The only contract the runner relies on: a row whose status is
    non-empty has been processed and is never listed as pending again.
    """

    @abstractmethod
    def list_pending(self, limit: int) -> List[JobRow]:
        """Up to `limit` pending rows, in row order."""

    @abstractmethod
    def commit(self, row: JobRow, result: RowResult) -> None:
        """Write a row's result back (the checkpoint)."""

    @abstractmethod
    def enqueue(self, dois: Iterable[str]) -> int:
        """Append pending rows; returns how many were added."""

    @abstractmethod
    def rows(self) -> List[JobRow]:
        ...

    def pending_count(self) -> int:
        return sum(1 for r in self.rows() if r.is_pending)


def _clean_dois(dois: Iterable[str]) -> List[str]:
    return [d.strip() for d in dois if d and d.strip()]


class InMemoryJobStore(JobStore):
    def __init__(self, dois: Iterable[str] = ()):
        self._rows: List[JobRow] = []
        self.enqueue(dois)

    def list_pending(self, limit: int) -> List[JobRow]:
        if limit <= 0:
            return []
        return [r for r in self._rows if r.is_pending][:limit]

    def commit(self, row: JobRow, result: RowResult) -> None:
        self._rows[row.key].apply(result)
        row.apply(result)

    def enqueue(self, dois: Iterable[str]) -> int:
        added = _clean_dois(dois)
        start = len(self._rows)
        self._rows.extend(JobRow(key=start + i, doi=d) for i, d in enumerate(added))
        return len(added)

    def rows(self) -> List[JobRow]:
        return list(self._rows)


class CsvJobStore(JobStore):
    """
    Job rows kept in a CSV file with the columns in CSV_COLUMNS.

    The file is re-read before every operation and rewritten atomically
    on every commit, so an interrupted run leaves it intact.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> List[JobRow]:
        if not self.path.exists():
            return []

        rows: List[JobRow] = []
        with self.path.open(newline="", encoding="utf-8") as fh:
            for i, rec in enumerate(csv.DictReader(fh)):
                refs = (rec.get("refs_evaluated") or "").strip()
                retracted = rec.get("retracted_dois") or ""
                rows.append(
                    JobRow(
                        key=i,
                        doi=(rec.get("doi") or "").strip(),
                        status=(rec.get("status") or "").strip(),
                        reason=rec.get("reason") or "",
                        refs_evaluated=int(refs) if refs.isdigit() else 0,
                        retracted_dois=[d for d in retracted.split(LIST_SEPARATOR) if d],
                    )
                )
        return rows

    def _write(self, rows: List[JobRow]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                writer.writerow(CSV_COLUMNS)
                for r in rows:
                    writer.writerow([
                        r.doi,
                        r.status,
                        r.reason,
                        r.refs_evaluated if r.status else "",
                        LIST_SEPARATOR.join(r.retracted_dois),
                    ])
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def list_pending(self, limit: int) -> List[JobRow]:
        if limit <= 0:
            return []
        return [r for r in self._read() if r.is_pending][:limit]

    def commit(self, row: JobRow, result: RowResult) -> None:
        rows = self._read()
        if row.key >= len(rows) or rows[row.key].doi != row.doi:
            raise KeyError(f"row {row.key} ({row.doi}) is no longer in {self.path}")
        rows[row.key].apply(result)
        self._write(rows)
        row.apply(result)

    def enqueue(self, dois: Iterable[str]) -> int:
        rows = self._read()
        added = _clean_dois(dois)
        rows.extend(JobRow(key=len(rows) + i, doi=d) for i, d in enumerate(added))
        self._write(rows)
        return len(added)

    def rows(self) -> List[JobRow]:
        return self._read()


class PostgresJobStore(JobStore):
    """Job rows in the radar_jobs table. Each call uses its own connection."""

    def __init__(self, conn_factory: Optional[Callable] = None):
        self.conn_factory = conn_factory or get_conn
        self._table_checked = False

    def _connect(self):
        conn = self.conn_factory()
        if not self._table_checked:
            cur = conn.cursor()
            try:
                ensure_jobs_table(cur)
                conn.commit()
            finally:
                cur.close()
            self._table_checked = True
        return conn

    @staticmethod
    def _row(rec) -> JobRow:
        key, doi, status, reason, refs, retracted = rec
        return JobRow(
            key=key,
            doi=doi,
            status=status or "",
            reason=reason or "",
            refs_evaluated=refs or 0,
            retracted_dois=list(retracted or []),
        )

    def list_pending(self, limit: int) -> List[JobRow]:
        if limit <= 0:
            return []
        conn = self._connect()
        cur = conn.cursor()
        try:
            cur.execute(
                f"""
                SELECT id, doi, status, reason, refs_evaluated, retracted_dois
                FROM {JOBS_TABLE}
                WHERE status = ''
                ORDER BY id
                LIMIT %s;
                """,
                (limit,),
            )
            return [self._row(rec) for rec in cur.fetchall()]
        finally:
            cur.close()
            conn.close()

    def commit(self, row: JobRow, result: RowResult) -> None:
        conn = self._connect()
        cur = conn.cursor()
        try:
            cur.execute(
                f"""
                UPDATE {JOBS_TABLE}
                SET status         = %s,
                    reason         = %s,
                    refs_evaluated = %s,
                    retracted_dois = %s,
                    updated_at     = NOW()
                WHERE id = %s;
                """,
                (
                    result.status.value,
                    result.reason,
                    result.refs_evaluated,
                    list(result.retracted_dois),
                    row.key,
                ),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            conn.close()
        row.apply(result)

    def enqueue(self, dois: Iterable[str]) -> int:
        added = _clean_dois(dois)
        if not added:
            return 0
        conn = self._connect()
        cur = conn.cursor()
        try:
            cur.executemany(
                f"INSERT INTO {JOBS_TABLE} (doi) VALUES (%s);",
                [(d,) for d in added],
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            conn.close()
        log.info(f"Queued {len(added)} DOIs in {JOBS_TABLE}.")
        return len(added)

    def rows(self) -> List[JobRow]:
        conn = self._connect()
        cur = conn.cursor()
        try:
            cur.execute(
                f"""
                SELECT id, doi, status, reason, refs_evaluated, retracted_dois
                FROM {JOBS_TABLE}
                ORDER BY id;
                """
            )
            return [self._row(rec) for rec in cur.fetchall()]
        finally:
            cur.close()
            conn.close()


def open_store(location: str | Path | None = None, postgres: bool = False) -> JobStore:
    """Store for a CLI/API location: Postgres, or a CSV file path."""
    if postgres:
        return PostgresJobStore()
    if location is None:
        raise ValueError("a CSV path is required unless postgres=True")
    return CsvJobStore(location)
