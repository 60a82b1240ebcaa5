# radar/engine/resolver.py

from collections import Counter
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from colorama import Fore

from radar.core.doi import normalize_doi
from radar.core.errors import BudgetExhausted, ProviderError
from radar.core.models import Reference, Resolution, Work
from radar.core.status import FLAGGED, RowStatus, Status
from radar.engine.classifier import ReferenceClassifier
from radar.globals import MAX_REFERENCES, REFERENCE_BATCH_SIZE, SHORT_CIRCUIT_INDEXED
from radar.logger import ColorLogger
from radar.sources.openalex import OpenAlexClient, shorten_id
from radar.sources.retraction_index import RetractionIndex
from radar.utils.progress import create_progress_bar

log = ColorLogger("RESOLVER", Fore.BLUE, include_timestamps=True)

NOT_RETURNED_NOTE = "Reference {id} not returned by provider."
SHORT_CIRCUIT_NOTE = (
    "Focal DOI is listed in the Retraction Watch dataset; references were not evaluated."
)


def chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    if size < 1:
        raise ValueError("batch size must be >= 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def summarize_statuses(references: Sequence[Reference]) -> str:
    """
    "97 references evaluated: 1 retracted, 2 unknown, 94 ok".
    Statuses are listed most severe first.
    """
    counts = Counter(r.status for r in references)
    parts = [
        f"{counts[s]} {s.value}"
        for s in sorted(counts, key=lambda s: s.rank, reverse=True)
    ]
    noun = "reference" if len(references) == 1 else "references"
    return f"{len(references)} {noun} evaluated: " + ", ".join(parts)


def row_status_for(references: Sequence[Reference], focal_retracted: bool) -> RowStatus:
    if focal_retracted:
        return RowStatus.RETRACTED
    statuses = {r.status for r in references}
    if Status.RETRACTED in statuses:
        return RowStatus.REFS_RETRACTED
    if statuses & FLAGGED:
        return RowStatus.REFS_FLAGGED
    return RowStatus.CLEAN


class ReferenceResolver:
    """
    Turns a focal DOI into an ordered, fully classified reference list.

    Steps:
      1. short-circuit if the focal DOI is in the retraction index
      2. fetch the focal work and its referenced_works ids
      3. fetch reference metadata in fixed-size batches
      4. classify each reference (no DOI -> no_doi, else adapters + merge)

    Reference indices always run 1..N in reference-list order: ids that
    the provider drops, or whose batch fails, still get an UNKNOWN entry.
    """

    def __init__(
        self,
        works: OpenAlexClient,
        index: RetractionIndex,
        classifier: ReferenceClassifier,
        batch_size: int = REFERENCE_BATCH_SIZE,
        max_references: int = MAX_REFERENCES,
        short_circuit_indexed: bool = SHORT_CIRCUIT_INDEXED,
        show_progress: bool = False,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.works = works
        self.index = index
        self.classifier = classifier
        self.batch_size = batch_size
        self.max_references = max_references
        self.short_circuit_indexed = short_circuit_indexed
        self.show_progress = show_progress

    # Batched metadata
    def fetch_reference_works(self, ids: Sequence[str]) -> List[Tuple[Reference, Optional[Work]]]:
        """
        Fetch metadata for every id, one batch at a time.

        Returns one (Reference, Work) pair per id, in order. When the
        provider could not supply a work the Reference is already UNKNOWN
        and the Work is None.
        """
        entries: List[Tuple[Reference, Optional[Work]]] = []

        for batch_no, batch in enumerate(chunked(ids, self.batch_size), start=1):
            offset = len(entries)
            try:
                works = self.works.get_works_by_ids(batch)
            except ProviderError as e:
                log.error(f"Batch {batch_no} ({len(batch)} ids) failed: {e}")
                entries.extend(
                    (_unknown_reference(offset + i, wid, f"Batch lookup failed: {e}"), None)
                    for i, wid in enumerate(batch, start=1)
                )
                continue

            by_id: Dict[str, Work] = {}
            for work in works:
                # First copy wins when the provider repeats an entry
                by_id.setdefault(work.id, work)

            for i, wid in enumerate(batch, start=1):
                work = by_id.get(shorten_id(wid))
                if work is None:
                    entries.append((_unknown_reference(offset + i, wid, NOT_RETURNED_NOTE.format(id=wid)), None))
                else:
                    entries.append((_pending_reference(offset + i, work), work))

        return entries

    # Full resolution
    def resolve(self, doi: str, should_continue: Optional[Callable[[], bool]] = None) -> Resolution:
        """
        Screen one focal DOI.

        Raises ProviderError when the focal work cannot be fetched, and
        BudgetExhausted when `should_continue` says stop before a reference.
        """
        norm = normalize_doi(doi)
        if not norm:
            raise ValueError(f"Invalid DOI: {doi!r}")

        self.index.load()
        indexed = self.index.lookup(norm)

        if indexed and self.short_circuit_indexed:
            log.warn(f"{norm} is in the retraction index; skipping reference evaluation.")
            return Resolution(doi=norm, status=RowStatus.RETRACTED, reason=SHORT_CIRCUIT_NOTE)

        work = self.works.get_work_by_doi(norm)
        focal_retracted = indexed or work.is_retracted

        ids = work.referenced_work_ids
        if not ids:
            if focal_retracted:
                return Resolution(doi=norm, status=RowStatus.RETRACTED, work=work,
                                  reason="Focal work is retracted; it lists no references.")
            return Resolution(doi=norm, status=RowStatus.NO_REFERENCES, work=work,
                              reason="This work has no referenced works in OpenAlex. Nothing to check.")

        truncated = bool(self.max_references) and len(ids) > self.max_references
        if truncated:
            log.warn(f"{norm}: checking the first {self.max_references} of {len(ids)} references.")
            ids = ids[:self.max_references]

        entries = self.fetch_reference_works(ids)
        references = self._classify_all(norm, entries, should_continue)

        reason = summarize_statuses(references)
        if truncated:
            reason += f" (first {self.max_references} of {len(work.referenced_work_ids)})"
        if focal_retracted:
            reason = "Focal work is retracted. " + reason

        return Resolution(
            doi=norm,
            status=row_status_for(references, focal_retracted),
            reason=reason,
            work=work,
            references=references,
            truncated=truncated,
        )

    def _classify_all(
        self,
        doi: str,
        entries: List[Tuple[Reference, Optional[Work]]],
        should_continue: Optional[Callable[[], bool]],
    ) -> List[Reference]:
        progress = None
        if self.show_progress:
            progress = create_progress_bar(total=len(entries), desc=f"References {doi}", unit="ref")

        references: List[Reference] = []
        try:
            for ref, work in entries:
                if should_continue is not None and not should_continue():
                    raise BudgetExhausted(f"time budget exhausted at reference {ref.index} of {doi}")

                # work is None when the metadata lookup already failed
                if work is not None:
                    verdict = self.classifier.classify(ref.doi, work)
                    ref.status = verdict.status
                    ref.evidence = verdict.evidence
                references.append(ref)

                if ref.status in FLAGGED:
                    log.verdict(ref.status, f"#{ref.index} {ref.doi}: {ref.title}")
                if progress is not None:
                    progress.update(1, status=ref.status.value)
        finally:
            if progress is not None:
                progress.close()

        return references


def _pending_reference(index: int, work: Work) -> Reference:
    return Reference(
        index=index,
        doi=work.doi,
        work_id=work.id,
        title=work.title,
        year=work.year,
        status=Status.OK,
        authors=list(work.authors),
        venue=work.venue,
        evidence="",
    )


def _unknown_reference(index: int, work_id: str, note: str) -> Reference:
    return Reference(
        index=index,
        doi=None,
        work_id=shorten_id(work_id),
        title="(error fetching reference)",
        year=None,
        status=Status.UNKNOWN,
        evidence=note,
    )

