# radar/engine/report.py

import csv
import hashlib
import io
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from radar.core.models import Reference
from radar.core.status import Status

EXPORT_HEADER = ["index", "status", "year", "title", "doi_or_id", "citation", "notes"]
EXPORT_PREFIX = "retraction-radar-"
MAX_BASENAME = 80


@dataclass
class AggregateReport:
    counts: Dict[Status, int]
    total: int
    interesting: List[Reference] = field(default_factory=list)

    def count(self, status: Status) -> int:
        return self.counts.get(status, 0)

    def as_dict(self) -> Dict[str, int]:
        """{"total": N, "ok": .., "unknown": .., ...} with every status present."""
        out = {"total": self.total}
        out.update({s.value: self.counts.get(s, 0) for s in Status})
        return out


def interesting_key(ref: Reference) -> tuple[int, int]:
    """Most severe first; original citation order within a severity."""
    return -ref.status.severity, ref.index


def aggregate(references: Iterable[Reference]) -> AggregateReport:
    refs = list(references)
    counts = {s: 0 for s in Status}
    for r in refs:
        counts[r.status] += 1

    interesting = sorted((r for r in refs if r.status is not Status.OK), key=interesting_key)
    return AggregateReport(counts=counts, total=len(refs), interesting=interesting)


def format_citation(ref: Reference) -> str:
    """
    Short citation: "Smith J, Doe A, Roe B, et al. (2019). Title. Venue."
    Parts that are unknown are left out.
    """
    parts: List[str] = []

    if ref.authors:
        names = ", ".join(ref.authors[:3])
        if len(ref.authors) > 3:
            names += ", et al."
        parts.append(names)
    if ref.year:
        parts.append(f"({ref.year}).")
    elif parts:
        parts[-1] += "."

    if ref.title:
        parts.append(ref.title.rstrip(".") + ".")
    if ref.venue:
        parts.append(ref.venue.rstrip(".") + ".")

    return " ".join(parts)


def export_rows(references: Iterable[Reference]) -> List[List[str]]:
    """Header plus one row per interesting reference, in report order."""
    rows = [list(EXPORT_HEADER)]
    for ref in aggregate(references).interesting:
        rows.append([
            str(ref.index),
            ref.status.value,
            str(ref.year) if ref.year is not None else "",
            ref.title or "",
            ref.doi_or_id,
            format_citation(ref),
            ref.evidence or "",
        ])
    return rows


def export_csv(references: Iterable[Reference]) -> str:
    """
    RFC 4180 text: every field quoted, quotes doubled, CRLF line endings.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerows(export_rows(references))
    return buf.getvalue()


def export_filename(doi: str) -> str:
    """
    Stable file name for a focal DOI's export.

    Characters outside [A-Za-z0-9._-] become "_" and the name is capped;
    a capped name gets a short hash of the full DOI so two long DOIs with
    the same prefix still get different files.
    """
    raw = (doi or "").strip()
    base = re.sub(r"^https?://", "", raw)
    base = re.sub(r"[^a-zA-Z0-9._-]+", "_", base)

    if len(base) > MAX_BASENAME:
        digest = hashlib.sha1(raw.lower().encode("utf-8")).hexdigest()[:8]
        base = base[:MAX_BASENAME - len(digest) - 1] + "_" + digest

    return f"{EXPORT_PREFIX}{base or 'results'}.csv"


def summarize(report: AggregateReport) -> str:
    """One-line outcome of an analysis."""
    retracted = report.count(Status.RETRACTED)
    eoc = report.count(Status.EXPRESSION_OF_CONCERN)
    if retracted or eoc:
        return (
            f"Found {retracted} retracted and {eoc} with expression of concern "
            f"among {report.total} cited works."
        )
    return (
        f"No retracted or expression-of-concern signals among {report.total} cited works. "
        f"Always double-check manually."
    )
