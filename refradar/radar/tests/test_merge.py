# radar/tests/test_merge.py

"""
Tests for status ordering and verdict merging.
"""

import itertools

import pytest

from radar.core.merge import (
    NO_DOI_NOTE,
    SOURCE_CROSSREF,
    SOURCE_PUBMED,
    SOURCE_RETRACTION_INDEX,
    SOURCE_SELF_FLAG,
    merge_verdicts,
    no_doi_verdict,
    order_verdicts,
)
from radar.core.models import SourceVerdict
from radar.core.status import FLAGGED, Status, check_exhaustive, most_severe
from radar.logger import STATUS_COLORS


class TestStatusOrdering:
    """Severity and precedence between statuses."""

    def test_most_severe_of_nothing_is_ok(self):
        """No statuses at all merge to ok."""
        assert most_severe([]) is Status.OK

    def test_retracted_beats_everything(self):
        """Retracted is the top of the order."""
        assert most_severe(list(Status)) is Status.RETRACTED

    def test_precedence_breaks_severity_ties(self):
        """Withdrawn and expression of concern share a severity; EoC wins."""
        assert Status.WITHDRAWN.severity == Status.EXPRESSION_OF_CONCERN.severity
        assert most_severe([Status.WITHDRAWN, Status.EXPRESSION_OF_CONCERN]) is Status.EXPRESSION_OF_CONCERN
        assert most_severe([Status.EXPRESSION_OF_CONCERN, Status.WITHDRAWN]) is Status.EXPRESSION_OF_CONCERN

    def test_unknown_outranks_ok(self):
        """Not knowing is worse than a clean answer."""
        assert most_severe([Status.OK, Status.UNKNOWN]) is Status.UNKNOWN

    def test_flagged_set(self):
        """Only correction-type statuses need a human look."""
        assert Status.OK not in FLAGGED
        assert Status.UNKNOWN not in FLAGGED
        assert Status.NO_DOI not in FLAGGED
        assert Status.CORRECTED in FLAGGED

    def test_every_status_has_a_label(self):
        """Every status has a display label."""
        assert all(s.label for s in Status)

    def test_incomplete_status_table_is_rejected(self):
        """A per-status table missing an entry fails loudly, even under -O."""
        with pytest.raises(RuntimeError, match="no entry for: retracted"):
            check_exhaustive({s: 1 for s in Status if s is not Status.RETRACTED}, "TABLE")

    def test_status_colors_cover_every_status(self):
        """Every status has a log colour."""
        check_exhaustive(STATUS_COLORS, "STATUS_COLORS")


class TestMergeVerdicts:
    """Combining per-source verdicts into one."""

    VERDICTS = [
        SourceVerdict(SOURCE_PUBMED, Status.CORRECTED, "PubMed: erratum."),
        SourceVerdict(SOURCE_CROSSREF, Status.OK, "Crossref: nothing."),
        SourceVerdict(SOURCE_RETRACTION_INDEX, Status.OK, "RW: not found."),
        SourceVerdict(SOURCE_SELF_FLAG, Status.OK, ""),
    ]

    def test_status_is_most_severe_input(self):
        """The merged status is the most severe verdict."""
        assert merge_verdicts(self.VERDICTS).status is Status.CORRECTED

    def test_evidence_in_fixed_source_order_skipping_empty_notes(self):
        """Notes join in source order and blank ones are dropped."""
        merged = merge_verdicts(self.VERDICTS)
        assert merged.evidence == "RW: not found. Crossref: nothing. PubMed: erratum."

    def test_order_independent(self):
        """Any arrival order produces the same merged verdict."""
        expected = merge_verdicts(self.VERDICTS)
        for perm in itertools.permutations(self.VERDICTS):
            assert merge_verdicts(perm) == expected

    def test_adding_a_verdict_never_lowers_severity(self):
        """Merging in one more verdict can only raise severity."""
        base = merge_verdicts(self.VERDICTS[:2])
        for extra in Status:
            merged = merge_verdicts(self.VERDICTS[:2] + [SourceVerdict("extra", extra, "")])
            assert merged.status.rank >= base.status.rank

    def test_empty_input_is_ok(self):
        """Nothing to merge gives ok with no evidence."""
        merged = merge_verdicts([])
        assert merged.status is Status.OK
        assert merged.evidence == ""

    def test_unknown_sources_sort_last_by_name(self):
        """Sources outside the fixed order come last, by name."""
        ordered = order_verdicts([
            SourceVerdict("zeta", Status.OK),
            SourceVerdict("alpha", Status.OK),
            SourceVerdict(SOURCE_PUBMED, Status.OK),
        ])
        assert [v.source for v in ordered] == [SOURCE_PUBMED, "alpha", "zeta"]

    def test_no_doi_verdict(self):
        """References without a DOI get the fixed note."""
        verdict = no_doi_verdict()
        assert verdict.status is Status.NO_DOI
        assert verdict.evidence == NO_DOI_NOTE
