# radar/sources/retraction_index.py

import csv
import io
import threading
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Set

from colorama import Fore

from radar.core.doi import normalize_doi
from radar.core.errors import ProviderError
from radar.globals import RETRACTION_INDEX_URL
from radar.logger import ColorLogger
from radar.sources.http import HttpClient

log = ColorLogger("RW INDEX", Fore.MAGENTA, include_timestamps=True)

SOURCE_NAME = "Retraction Watch"

# Checked in order; the first header present wins
_PREFERRED_DOI_HEADERS = ("doi", "originalpaperdoi")


class LoadState(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def find_doi_column(header: List[str]) -> int:
    """
    Index of the DOI column in a header row, or -1.

    An exact "doi" header wins, then the Retraction Watch
    "OriginalPaperDOI" column, then any header containing "doi".
    """
    cleaned = [h.strip().lower() for h in header]
    for preferred in _PREFERRED_DOI_HEADERS:
        if preferred in cleaned:
            return cleaned.index(preferred)
    for idx, h in enumerate(cleaned):
        if "doi" in h:
            return idx
    return -1


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def parse_retraction_dataset(text: str) -> Set[str]:
    """
    Parse a bulk retraction dataset into a set of normalized DOIs.

    Two shapes are accepted:
      - a flat list, one DOI per line
      - a CSV table with a header row; quoted fields may contain commas,
        doubled quotes and newlines
    """
    first = _first_line(text or "")
    if not first:
        return set()

    # Flat list: the very first line is already a DOI
    if normalize_doi(first) and "," not in first:
        dois = (normalize_doi(line) for line in text.splitlines())
        return {d for d in dois if d}

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header = next(reader, [])
    col = find_doi_column(header)
    if col == -1:
        log.warn("DOI column not found in header; index will be empty.")
        return set()

    seen: Set[str] = set()
    for row in reader:
        if col >= len(row):
            continue
        # Some datasets put several DOIs in one cell
        for part in row[col].split(";"):
            norm = normalize_doi(part)
            if norm:
                seen.add(norm)
    return seen


class RetractionIndex:
    """
    Set of DOIs known to be retracted, loaded once from a remote or local dataset.

    The index is fail-soft: if the dataset cannot be fetched or parsed, it
    stays empty and `state` becomes FAILED. `state` is for observability;
    lookups behave the same either way.
    """

    def __init__(self, location: str = RETRACTION_INDEX_URL, http: Optional[HttpClient] = None):
        self.location = location
        self._http = http
        self._dois: Set[str] = set()
        self.state = LoadState.NOT_LOADED
        self.failure_reason: Optional[str] = None
        self._load_lock = threading.Lock()

    @classmethod
    def from_dois(cls, dois: Iterable[str]) -> "RetractionIndex":
        index = cls(location="")
        index._dois = {d for d in (normalize_doi(x) for x in dois) if d}
        index.state = LoadState.READY
        return index

    @property
    def http(self) -> HttpClient:
        if self._http is None:
            self._http = HttpClient(SOURCE_NAME)
        return self._http

    def _read(self) -> str:
        if self.location.startswith(("http://", "https://")):
            return self.http.get_text(self.location)
        return Path(self.location).read_text(encoding="utf-8")

    def load(self) -> "RetractionIndex":
        """
        Fetch and parse the dataset. Only the first call does any work;
        callers arriving while it runs block until it has settled.
        """
        if self.state in (LoadState.READY, LoadState.FAILED):
            return self

        with self._load_lock:
            if self.state is LoadState.NOT_LOADED:
                self._load()
        return self

    def _load(self) -> None:
        self.state = LoadState.LOADING
        log.info(f"Loading retraction dataset from {self.location}...")
        try:
            self._dois = parse_retraction_dataset(self._read())
        except (ProviderError, OSError, UnicodeDecodeError, csv.Error) as e:
            self._dois = set()
            self.state = LoadState.FAILED
            self.failure_reason = str(e)
            log.error(f"Retraction dataset could not be loaded: {e}")
            return
        except Exception:
            self.state = LoadState.NOT_LOADED
            raise

        if not self._dois:
            self.state = LoadState.FAILED
            self.failure_reason = "dataset contained no DOIs"
            log.warn("Retraction dataset loaded but contained no DOIs.")
        else:
            self.state = LoadState.READY
            log.success(f"Retraction dataset loaded: {len(self._dois)} DOIs.")

    def is_ready(self) -> bool:
        return self.state is LoadState.READY

    def lookup(self, doi: str) -> bool:
        key = normalize_doi(doi)
        return bool(key) and key in self._dois

    def __contains__(self, doi: str) -> bool:
        return self.lookup(doi)

    def __len__(self) -> int:
        return len(self._dois)
