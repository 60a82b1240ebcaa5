# radar/sources/pubmed.py

from typing import Any, Dict, List, Optional

from radar.core.errors import Malformed
from radar.core.merge import SOURCE_PUBMED
from radar.core.models import SourceVerdict
from radar.core.status import Status, most_severe
from radar.globals import PUBMED_API_KEY, PUBMED_BASE_URL
from radar.sources.http import HttpClient

SOURCE_NAME = "PubMed"

# (substring of lower-cased publication type, status, note)
PUBLICATION_TYPE_RULES = (
    ("retracted publication", Status.RETRACTED, "PubMed: publication type = Retracted Publication."),
    ("retraction of publication", Status.RETRACTED, "PubMed: publication type = Retraction of Publication (notice)."),
    ("expression of concern", Status.EXPRESSION_OF_CONCERN, "PubMed: publication type = Expression of Concern."),
    ("erratum", Status.CORRECTED, "PubMed: publication type indicates correction/erratum."),
    ("corrigendum", Status.CORRECTED, "PubMed: publication type indicates correction/erratum."),
    ("correction", Status.CORRECTED, "PubMed: publication type indicates correction/erratum."),
)


def classify_publication_types(pmid: str, pubtypes: List[str]) -> SourceVerdict:
    statuses: List[Status] = []
    notes: List[str] = []

    for pt in pubtypes:
        lower = str(pt).lower()
        for needle, status, note in PUBLICATION_TYPE_RULES:
            if needle in lower:
                statuses.append(status)
                notes.append(note)
                break

    if not statuses:
        notes.append("PubMed: no retraction-related publication types.")
    notes.append(f"PubMed PMID: {pmid}.")

    return SourceVerdict(SOURCE_PUBMED, most_severe(statuses), " ".join(dict.fromkeys(notes)))


class PubMedClient:
    """Record-type feed backed by NCBI E-utilities (esearch + esummary)."""

    def __init__(self, http: Optional[HttpClient] = None, base_url: str = PUBMED_BASE_URL,
                 api_key: str = PUBMED_API_KEY):
        self.http = http or HttpClient(SOURCE_NAME)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    def _params(self, **params) -> Dict[str, Any]:
        params["db"] = "pubmed"
        params["retmode"] = "json"
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    def resolve_record_id(self, doi: str) -> Optional[str]:
        """First PMID indexed under this DOI, or None."""
        data = self.http.get_json(
            f"{self.base_url}/esearch.fcgi",
            params=self._params(term=f"{doi.strip()}[DOI]"),
        )
        result = data.get("esearchresult") if isinstance(data, dict) else None
        if not isinstance(result, dict):
            raise Malformed(SOURCE_NAME, "esearch response without esearchresult")
        ids = result.get("idlist") or []
        return str(ids[0]) if ids else None

    def get_publication_types(self, pmid: str) -> List[str]:
        data = self.http.get_json(
            f"{self.base_url}/esummary.fcgi",
            params=self._params(id=pmid),
        )
        result = data.get("result") if isinstance(data, dict) else None
        summary = result.get(pmid) if isinstance(result, dict) else None
        if not isinstance(summary, dict):
            raise Malformed(SOURCE_NAME, f"esummary: missing result for PMID {pmid}")
        return [str(p) for p in summary.get("pubtype") or []]

    def check(self, doi: str) -> SourceVerdict:
        pmid = self.resolve_record_id(doi)
        if not pmid:
            return SourceVerdict(SOURCE_PUBMED, Status.OK, "PubMed: no record found for this DOI.")
        return classify_publication_types(pmid, self.get_publication_types(pmid))
