# radar/tests/test_cli.py

"""
Tests for CLI parsing and the batch commands.
"""

from unittest.mock import patch

import pytest

from radar.api import Analysis, RadarAPI, read_doi_file
from radar.cli import build_parser, run_command
from radar.core.models import Reference, Resolution
from radar.core.status import RowStatus, Status
from radar.database.store import CsvJobStore
from radar.engine.report import aggregate
from radar.sources.retraction_index import RetractionIndex


class TestParser:
    """Tests for argument parsing."""

    def test_analyze(self):
        """analyze takes a DOI plus its display flags."""
        args = build_parser().parse_args(["analyze", "10.1/x", "--all"])
        assert args.category == "analyze"
        assert args.doi == "10.1/x"
        assert args.all is True
        assert args.export is None

    def test_batch_run_defaults(self):
        """batch run defaults to the CSV store."""
        args = build_parser().parse_args(["batch", "run", "--limit", "3"])
        assert args.batch_cmd == "run"
        assert args.limit == 3
        assert args.postgres is False

    def test_global_options(self):
        """Global options come before the subcommand."""
        args = build_parser().parse_args(["--batch-size", "20", "--no-short-circuit", "batch", "status"])
        assert args.batch_size == 20
        assert args.no_short_circuit is True

    def test_database_alias(self):
        """database is an alias for db."""
        args = build_parser().parse_args(["database", "init", "--db-name", "radar"])
        assert args.db_cmd == "init"
        assert args.db_name == "radar"

    def test_missing_command_exits(self):
        """A command is required in one-shot mode."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestBatchCommands:
    """Tests for the batch subcommands against a CSV store."""

    def test_enqueue_from_file_then_run(self, tmp_path):
        """Rows enqueued from a file are processed by batch run."""
        doi_file = tmp_path / "dois.txt"
        doi_file.write_text("# screening list\n10.1/a\n\n10.1/b\n", encoding="utf-8")
        store_path = tmp_path / "jobs.csv"
        parser = build_parser()

        run_command(parser.parse_args(["batch", "enqueue", "--file", str(doi_file), "--store", str(store_path)]))
        assert [r.doi for r in CsvJobStore(store_path).rows()] == ["10.1/a", "10.1/b"]

        with patch("radar.engine.resolver.ReferenceResolver.resolve") as mock_resolve:
            mock_resolve.side_effect = lambda doi, should_continue=None: Resolution(
                doi=doi, status=RowStatus.CLEAN, reason="ok"
            )
            with patch("radar.engine.runner.time.sleep"):
                run_command(parser.parse_args(["batch", "run", "--store", str(store_path)]))

        assert [r.status for r in CsvJobStore(store_path).rows()] == ["clean", "clean"]


def test_read_doi_file_skips_comments(tmp_path):
    """Blank lines and comments are ignored."""
    path = tmp_path / "dois.txt"
    path.write_text("10.1/a\n  # note\n 10.1/b \n", encoding="utf-8")
    assert read_doi_file(path) == ["10.1/a", "10.1/b"]


class TestExport:
    """Tests for writing exports to disk."""

    def test_export_writes_named_file(self, tmp_path):
        """The export lands in the directory under the DOI's file name."""
        refs = [Reference(index=1, doi="10.1/x", work_id="W1", title="T", year=2001, status=Status.RETRACTED)]
        analysis = Analysis(
            resolution=Resolution(doi="10.9/focal", status=RowStatus.REFS_RETRACTED, reason="r", references=refs),
            report=aggregate(refs),
        )
        api = RadarAPI(index=RetractionIndex.from_dois([]), works=object(), adapters=[])

        filename, text = api.export(analysis, directory=tmp_path)

        assert filename == "retraction-radar-10.9_focal.csv"
        assert (tmp_path / filename).read_bytes().decode("utf-8") == text
        assert text.count("\r\n") == 2
