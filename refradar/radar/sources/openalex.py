# radar/sources/openalex.py

from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from colorama import Fore

from radar.core.doi import normalize_doi
from radar.core.errors import Malformed
from radar.core.models import Work
from radar.globals import CONTACT_EMAIL, OPENALEX_BASE_URL
from radar.logger import ColorLogger
from radar.sources.http import HttpClient

log = ColorLogger("OPENALEX", Fore.GREEN, include_timestamps=True)

SOURCE_NAME = "OpenAlex"

# Fields needed to classify a work; keeps batch payloads small
WORK_FIELDS = (
    "id",
    "doi",
    "display_name",
    "publication_year",
    "is_retracted",
    "referenced_works",
    "authorships",
    "primary_location",
)
REFERENCE_FIELDS = tuple(f for f in WORK_FIELDS if f != "referenced_works")

# OpenAlex caps OR-filters at 100 values
MAX_IDS_PER_REQUEST = 100


def shorten_id(openalex_id: Optional[str]) -> str:
    """
    Convert 'https://openalex.org/W123456789' -> 'W123456789'.
    """
    if not openalex_id:
        return ""
    return openalex_id.rstrip("/").split("/")[-1]


def normalize_openalex_work(work: Dict[str, Any]) -> Work:
    """Map a raw OpenAlex work object onto a Work snapshot."""
    if not isinstance(work, dict) or not work.get("id"):
        raise Malformed(SOURCE_NAME, "work object without an id")

    raw_title = work.get("display_name") or work.get("title")
    title = raw_title.strip() if isinstance(raw_title, str) and raw_title.strip() else "(no title)"

    year = work.get("publication_year")
    if not isinstance(year, int):
        year = None

    authors: List[str] = []
    for auth in work.get("authorships") or []:
        name = ((auth or {}).get("author") or {}).get("display_name")
        if name:
            authors.append(name)

    loc = work.get("primary_location") or {}
    venue = (loc.get("source") or {}).get("display_name")

    return Work(
        id=shorten_id(work.get("id")),
        doi=normalize_doi(work.get("doi")) or None,
        title=title,
        year=year,
        is_retracted=bool(work.get("is_retracted")),
        referenced_work_ids=[shorten_id(r) for r in work.get("referenced_works") or [] if r],
        authors=authors,
        venue=venue,
    )


class OpenAlexClient:
    """Work metadata provider backed by the OpenAlex REST API."""

    def __init__(self, http: Optional[HttpClient] = None, base_url: str = OPENALEX_BASE_URL,
                 mailto: str = CONTACT_EMAIL):
        self.http = http or HttpClient(SOURCE_NAME)
        self.base_url = base_url.rstrip("/")
        self.mailto = mailto

    def _params(self, **params) -> dict:
        if self.mailto:
            params["mailto"] = self.mailto
        return params

    def get_work_by_doi(self, doi: str) -> Work:
        """
        Fetch the focal work, including its referenced_works list.

        Raises NotFound, RateLimited, Unavailable or Malformed.
        """
        norm = normalize_doi(doi) or doi.strip()
        url = f"{self.base_url}/works/https://doi.org/{quote(norm, safe='/')}"
        data = self.http.get_json(url, params=self._params(select=",".join(WORK_FIELDS)))
        work = normalize_openalex_work(data)
        log.info(f"Resolved {norm} -> {work.id} ({len(work.referenced_work_ids)} references)")
        return work

    def get_works_by_ids(self, ids: Sequence[str]) -> List[Work]:
        """
        Fetch metadata for a batch of OpenAlex work ids.

        Lists longer than MAX_IDS_PER_REQUEST are split over several calls.
        The response may omit, reorder or duplicate works relative to `ids`;
        callers re-associate by Work.id.
        """
        short_ids = [shorten_id(i) for i in ids if i]

        works: List[Work] = []
        for start in range(0, len(short_ids), MAX_IDS_PER_REQUEST):
            works.extend(self._fetch_chunk(short_ids[start:start + MAX_IDS_PER_REQUEST]))
        return works

    def _fetch_chunk(self, short_ids: List[str]) -> List[Work]:
        data = self.http.get_json(
            f"{self.base_url}/works",
            params=self._params(
                filter="openalex_id:" + "|".join(short_ids),
                select=",".join(REFERENCE_FIELDS),
                **{"per-page": len(short_ids)},
            ),
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise Malformed(SOURCE_NAME, "batch response without a results list")

        works: List[Work] = []
        for raw in results:
            try:
                works.append(normalize_openalex_work(raw))
            except Malformed as e:
                log.warn(f"Skipping malformed work in batch: {e}")
        return works
