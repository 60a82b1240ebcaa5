# radar/tests/test_store.py

"""
Tests for job stores: in-memory, CSV file and PostgreSQL.
"""

from unittest.mock import MagicMock

import pytest

from radar.core.models import RowResult
from radar.core.status import RowStatus
from radar.database.store import CsvJobStore, InMemoryJobStore, PostgresJobStore, open_store


RESULT = RowResult(
    status=RowStatus.REFS_RETRACTED,
    reason="2 references evaluated: 1 retracted, 1 ok",
    refs_evaluated=2,
    retracted_dois=["10.1/x", "10.1/y"],
)


class TestInMemoryStore:
    """The in-memory store."""

    def test_enqueue_skips_blank_lines(self):
        """Blank DOIs are not queued."""
        store = InMemoryJobStore(["10.1/a", "  ", "", " 10.1/b "])
        assert [r.doi for r in store.rows()] == ["10.1/a", "10.1/b"]

    def test_committed_rows_are_not_pending(self):
        """Committed rows drop out of the pending list."""
        store = InMemoryJobStore(["10.1/a", "10.1/b"])
        row = store.list_pending(10)[0]
        store.commit(row, RESULT)
        assert [r.doi for r in store.list_pending(10)] == ["10.1/b"]

    def test_zero_limit(self):
        """A zero limit lists nothing."""
        assert InMemoryJobStore(["10.1/a"]).list_pending(0) == []


class TestCsvStore:
    """The CSV file store."""

    def test_round_trip(self, tmp_path):
        """Rows survive a reopen of the CSV file."""
        path = tmp_path / "jobs.csv"
        store = CsvJobStore(path)
        assert store.enqueue(["10.1/a", "10.1/b"]) == 2

        row = store.list_pending(1)[0]
        store.commit(row, RESULT)

        reopened = CsvJobStore(path)
        rows = reopened.rows()
        assert rows[0].status == "refs_retracted"
        assert rows[0].refs_evaluated == 2
        assert rows[0].retracted_dois == ["10.1/x", "10.1/y"]
        assert rows[1].is_pending
        assert [r.doi for r in reopened.list_pending(5)] == ["10.1/b"]

    def test_file_layout(self, tmp_path):
        """The file has one header and one line per row."""
        path = tmp_path / "jobs.csv"
        store = CsvJobStore(path)
        store.enqueue(["10.1/a"])
        store.commit(store.list_pending(1)[0], RESULT)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "doi,status,reason,refs_evaluated,retracted_dois"
        assert lines[1] == "10.1/a,refs_retracted,\"2 references evaluated: 1 retracted, 1 ok\",2,10.1/x;10.1/y"

    def test_hand_written_file_with_whitespace_status(self, tmp_path):
        """A status of only whitespace still counts as pending."""
        path = tmp_path / "jobs.csv"
        path.write_text("doi,status\n10.1/a,  \n10.1/b,clean\n", encoding="utf-8")
        assert [r.doi for r in CsvJobStore(path).list_pending(5)] == ["10.1/a"]

    def test_commit_refuses_moved_row(self, tmp_path):
        """A row whose DOI changed on disk is not overwritten."""
        path = tmp_path / "jobs.csv"
        store = CsvJobStore(path)
        store.enqueue(["10.1/a"])
        row = store.list_pending(1)[0]
        path.write_text("doi,status\n10.1/other,\n", encoding="utf-8")

        with pytest.raises(KeyError):
            store.commit(row, RESULT)

    def test_missing_file_is_empty(self, tmp_path):
        """A missing file is an empty store."""
        assert CsvJobStore(tmp_path / "none.csv").rows() == []

    def test_open_store(self, tmp_path):
        """open_store picks the backend from its arguments."""
        assert isinstance(open_store(tmp_path / "x.csv"), CsvJobStore)
        assert isinstance(open_store(postgres=True), PostgresJobStore)
        with pytest.raises(ValueError):
            open_store(None)


class TestPostgresStore:
    """The Postgres store, against a mocked connection."""

    def setup_method(self):
        self.conn = MagicMock()
        self.cur = self.conn.cursor.return_value
        self.store = PostgresJobStore(conn_factory=lambda: self.conn)

    def test_list_pending_selects_empty_status(self):
        """Pending rows are the ones with an empty status."""
        self.cur.fetchall.return_value = [(7, "10.1/a", "", None, None, None)]

        rows = self.store.list_pending(5)

        assert len(rows) == 1
        assert rows[0].key == 7
        assert rows[0].is_pending
        sql, params = self.cur.execute.call_args.args
        assert "WHERE status = ''" in sql
        assert params == (5,)
        self.conn.close.assert_called()

    def test_table_is_ensured_once(self):
        """CREATE TABLE runs only once per store."""
        self.cur.fetchall.return_value = []
        self.store.list_pending(1)
        self.store.list_pending(1)

        creates = [c for c in self.cur.execute.call_args_list if "CREATE TABLE" in c.args[0]]
        assert len(creates) == 1

    def test_commit_writes_result(self):
        """A commit writes every result column."""
        row = self.store._row((3, "10.1/a", "", None, None, None))

        self.store.commit(row, RESULT)

        sql, params = self.cur.execute.call_args.args
        assert sql.strip().startswith("UPDATE radar_jobs")
        assert params == ("refs_retracted", RESULT.reason, 2, ["10.1/x", "10.1/y"], 3)
        self.conn.commit.assert_called()
        assert row.status == "refs_retracted"

    def test_commit_rolls_back_on_failure(self):
        """A failed update is rolled back and the row stays pending."""
        row = self.store._row((3, "10.1/a", "", None, None, None))
        self.store._table_checked = True
        self.cur.execute.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            self.store.commit(row, RESULT)

        self.conn.rollback.assert_called_once()
        assert row.is_pending

    def test_enqueue(self):
        """DOIs are inserted in one executemany call."""
        assert self.store.enqueue(["10.1/a", " ", "10.1/b"]) == 2
        sql, params = self.cur.executemany.call_args.args
        assert "INSERT INTO radar_jobs" in sql
        assert params == [("10.1/a",), ("10.1/b",)]

    def test_enqueue_rolls_back_on_failure(self):
        """A failed insert leaves no half-written batch behind."""
        self.cur.executemany.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            self.store.enqueue(["10.1/a"])

        self.conn.rollback.assert_called_once()
        self.conn.close.assert_called()
