# radar/engine/classifier.py

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from radar.core.doi import normalize_doi
from radar.core.merge import merge_verdicts, no_doi_verdict
from radar.core.models import MergedVerdict, SourceVerdict, Work
from radar.sources.adapters import SourceAdapter


class ReferenceClassifier:
    """
    Fans a DOI out to every adapter and merges the answers.

    Adapters run concurrently; the merge only happens once all of them
    have settled, and evidence order does not depend on completion order.
    """

    def __init__(self, adapters: Sequence[SourceAdapter], concurrent: bool = True):
        self.adapters = list(adapters)
        self.concurrent = concurrent and len(self.adapters) > 1

    def collect(self, doi: str, work: Optional[Work] = None) -> List[SourceVerdict]:
        if not self.concurrent:
            return [a.safe_check(doi, work) for a in self.adapters]

        with ThreadPoolExecutor(max_workers=len(self.adapters)) as executor:
            futures = [executor.submit(a.safe_check, doi, work) for a in self.adapters]
            return [f.result() for f in futures]

    def classify(self, doi: Optional[str], work: Optional[Work] = None) -> MergedVerdict:
        norm = normalize_doi(doi)
        # Providers need a DOI; nothing to ask them
        if not norm:
            return no_doi_verdict()
        return merge_verdicts(self.collect(norm, work))
