# radar/core/merge.py

from typing import Iterable, List

from radar.core.models import MergedVerdict, SourceVerdict
from radar.core.status import Status, most_severe

# Source names, in the order their notes appear in merged evidence
SOURCE_RETRACTION_INDEX = "retraction_watch"
SOURCE_SELF_FLAG = "openalex"
SOURCE_CROSSREF = "crossref"
SOURCE_PUBMED = "pubmed"

SOURCE_ORDER = (
    SOURCE_RETRACTION_INDEX,
    SOURCE_SELF_FLAG,
    SOURCE_CROSSREF,
    SOURCE_PUBMED,
)

NO_DOI_NOTE = "No DOI available."


def _source_key(verdict: SourceVerdict) -> tuple[int, str]:
    try:
        return SOURCE_ORDER.index(verdict.source), ""
    except ValueError:
        return len(SOURCE_ORDER), verdict.source


def order_verdicts(verdicts: Iterable[SourceVerdict]) -> List[SourceVerdict]:
    """Verdicts in fixed source order, whatever order they arrived in."""
    return sorted(verdicts, key=_source_key)


def merge_verdicts(verdicts: Iterable[SourceVerdict]) -> MergedVerdict:
    """
    Combine per-source verdicts for one DOI into a single status.

    The merged status is the most severe input (severity, then precedence
    retracted > expression_of_concern > withdrawn > corrected). Evidence is
    every source's note joined in SOURCE_ORDER, so the result is the same
    however the adapters were scheduled.
    """
    ordered = order_verdicts(verdicts)
    status = most_severe(v.status for v in ordered)
    evidence = " ".join(v.evidence.strip() for v in ordered if v.evidence and v.evidence.strip())
    return MergedVerdict(status=status, evidence=evidence)


def no_doi_verdict() -> MergedVerdict:
    return MergedVerdict(status=Status.NO_DOI, evidence=NO_DOI_NOTE)
