# radar/tests/test_report.py

"""
Tests for aggregation and CSV export.
"""

import csv
import io

from radar.core.models import Reference
from radar.core.status import Status
from radar.engine.classifier import ReferenceClassifier
from radar.engine.report import (
    EXPORT_HEADER,
    MAX_BASENAME,
    aggregate,
    export_csv,
    export_filename,
    format_citation,
    summarize,
)
from radar.engine.resolver import ReferenceResolver
from radar.sources.adapters import RetractionIndexAdapter, SelfFlagAdapter
from radar.sources.retraction_index import RetractionIndex

from fakes import FakeWorks, make_work


def ref(index, status, doi=None, **kwargs):
    kwargs.setdefault("title", f"Paper {index}")
    kwargs.setdefault("year", 2000 + index)
    return Reference(index=index, doi=doi, work_id=f"W{index}", status=status, **kwargs)


class TestEndToEnd:
    """Focal work with one retracted, one DOI-less and one clean reference."""

    def resolve(self):
        index = RetractionIndex.from_dois(["10.1/bad"])
        works = [
            make_work("W1", doi="10.1/fine", title="Fine paper"),
            make_work("W2", doi=None, title="Book chapter"),
            make_work("W3", doi="10.1/bad", title="Retracted paper"),
        ]
        focal = make_work("W0", doi="10.9/focal", refs=["W1", "W2", "W3"])
        resolver = ReferenceResolver(
            FakeWorks(works, {"10.9/focal": focal}),
            index,
            ReferenceClassifier([RetractionIndexAdapter(index), SelfFlagAdapter()]),
        )
        return resolver.resolve("10.9/focal")

    def test_counts(self):
        """Counts cover every status, zero or not."""
        report = aggregate(self.resolve().references)
        assert report.as_dict() == {
            "total": 3,
            "ok": 1,
            "unknown": 0,
            "no_doi": 1,
            "corrected": 0,
            "expression_of_concern": 0,
            "withdrawn": 0,
            "retracted": 1,
        }

    def test_export_lists_interesting_rows_most_severe_first(self):
        """Export rows are the flagged references, most severe first."""
        text = export_csv(self.resolve().references)
        rows = list(csv.reader(io.StringIO(text)))

        assert rows[0] == EXPORT_HEADER
        assert len(rows) == 3
        assert rows[1][:2] == ["3", "retracted"]
        assert rows[1][4] == "10.1/bad"
        assert rows[2][:2] == ["2", "no_doi"]
        assert rows[2][4] == "W2"
        assert rows[2][5] == "Smith J, Doe A (2020). Book chapter. Journal of Tests."
        assert rows[2][6] == "No DOI available."


class TestAggregate:
    """Counts, ordering and summaries."""

    def test_interesting_sorted_by_severity_then_index(self):
        """Ties in severity keep citation order."""
        refs = [
            ref(1, Status.UNKNOWN),
            ref(2, Status.CORRECTED),
            ref(3, Status.OK),
            ref(4, Status.RETRACTED),
            ref(5, Status.CORRECTED),
        ]
        report = aggregate(refs)
        assert [r.index for r in report.interesting] == [4, 2, 5, 1]
        assert report.total == 5
        assert report.count(Status.CORRECTED) == 2

    def test_counts_sum_to_total(self):
        """Status counts add up to the total."""
        refs = [ref(i, s) for i, s in enumerate(Status, start=1)]
        report = aggregate(refs)
        assert sum(report.counts.values()) == report.total

    def test_summary_mentions_retractions(self):
        """The summary names retractions and expressions of concern."""
        report = aggregate([ref(1, Status.RETRACTED), ref(2, Status.EXPRESSION_OF_CONCERN), ref(3, Status.OK)])
        assert summarize(report) == "Found 1 retracted and 1 with expression of concern among 3 cited works."

    def test_summary_when_nothing_found(self):
        """A clean list still reminds the reader to check by hand."""
        assert summarize(aggregate([ref(1, Status.OK)])).startswith("No retracted")


class TestExportCsv:
    """CSV text layout."""

    def test_quoting_and_line_endings(self):
        """Fields are always quoted and rows end in CRLF."""
        text = export_csv([ref(1, Status.RETRACTED, doi="10.1/x", title='A "quoted", title')])
        lines = text.split("\r\n")
        assert lines[0] == '"index","status","year","title","doi_or_id","citation","notes"'
        assert '"A ""quoted"", title"' in lines[1]
        assert text.endswith("\r\n")

    def test_only_header_when_all_ok(self):
        """A clean list exports just the header."""
        assert export_csv([ref(1, Status.OK)]).count("\r\n") == 1


class TestFormatCitation:
    """Short citations for references."""

    def test_full_citation(self):
        """Three authors then et al., year, title and venue."""
        r = ref(1, Status.OK, authors=["A", "B", "C", "D"], venue="Cell.", title="Title.")
        assert format_citation(r) == "A, B, C, et al. (2001). Title. Cell."

    def test_without_year(self):
        """A missing year leaves no empty parentheses."""
        r = ref(1, Status.OK, authors=["A"], year=None, title="T")
        assert format_citation(r) == "A. T."

    def test_empty(self):
        """Nothing known gives an empty citation."""
        assert format_citation(ref(1, Status.OK, title="", year=None)) == ""


class TestExportFilename:
    """Export file names."""

    def test_plain_doi(self):
        """The slash becomes an underscore."""
        assert export_filename("10.1000/abc") == "retraction-radar-10.1000_abc.csv"

    def test_url_scheme_dropped(self):
        """http(s):// is stripped before sanitizing."""
        assert export_filename("https://doi.org/10.1/x") == "retraction-radar-doi.org_10.1_x.csv"

    def test_long_names_capped_and_distinct(self):
        """Long names are capped and keep a hash of the full DOI."""
        a = export_filename("10.1000/" + "a" * 200)
        b = export_filename("10.1000/" + "a" * 199 + "b")
        prefix_len = len("retraction-radar-")
        assert len(a) - prefix_len - len(".csv") == MAX_BASENAME
        assert a != b

    def test_empty(self):
        """An empty DOI falls back to "results"."""
        assert export_filename("") == "retraction-radar-results.csv"
