# radar/sources/adapters.py

from abc import ABC, abstractmethod
from typing import Optional

from colorama import Fore

from radar.core.errors import ProviderError
from radar.core.merge import (
    SOURCE_CROSSREF,
    SOURCE_PUBMED,
    SOURCE_RETRACTION_INDEX,
    SOURCE_SELF_FLAG,
)
from radar.core.models import SourceVerdict, Work
from radar.core.status import Status
from radar.logger import ColorLogger
from radar.sources.crossref import CrossrefClient
from radar.sources.pubmed import PubMedClient
from radar.sources.retraction_index import RetractionIndex

log = ColorLogger("ADAPTER", Fore.CYAN, include_timestamps=True)


class SourceAdapter(ABC):
    """
    One provider's opinion about one DOI.

    Subclasses implement `check`, which may raise ProviderError.
    Callers use `safe_check`, which never raises.
    """

    name: str = ""
    label: str = ""

    @abstractmethod
    def check(self, doi: str, work: Optional[Work] = None) -> SourceVerdict:
        ...

    def safe_check(self, doi: str, work: Optional[Work] = None) -> SourceVerdict:
        try:
            return self.check(doi, work)
        except ProviderError as e:
            return SourceVerdict(self.name, Status.UNKNOWN, f"{self.label} error: {e.message}")
        except Exception as e:
            log.error(f"{self.label} check failed unexpectedly for {doi}: {e!r}")
            return SourceVerdict(self.name, Status.UNKNOWN, f"{self.label} error: {e}")


class RetractionIndexAdapter(SourceAdapter):
    """Presence in the bulk retraction dataset means retracted."""

    name = SOURCE_RETRACTION_INDEX
    label = "Retraction Watch"

    def __init__(self, index: RetractionIndex):
        self.index = index

    def check(self, doi: str, work: Optional[Work] = None) -> SourceVerdict:
        if not self.index.is_ready():
            return SourceVerdict(self.name, Status.OK, "Retraction Watch CSV could not be loaded or was empty.")
        if self.index.lookup(doi):
            return SourceVerdict(
                self.name,
                Status.RETRACTED,
                "Retraction Watch CSV: DOI present in the Crossref/Retraction Watch dataset.",
            )
        return SourceVerdict(self.name, Status.OK, "Retraction Watch CSV: DOI not found (at time of query).")


class SelfFlagAdapter(SourceAdapter):
    """The is_retracted flag OpenAlex carries on the work itself."""

    name = SOURCE_SELF_FLAG
    label = "OpenAlex"

    def check(self, doi: str, work: Optional[Work] = None) -> SourceVerdict:
        if work is not None and work.is_retracted:
            return SourceVerdict(self.name, Status.RETRACTED, "OpenAlex: work flagged is_retracted.")
        return SourceVerdict(self.name, Status.OK, "")


class CrossrefAdapter(SourceAdapter):
    name = SOURCE_CROSSREF
    label = "Crossref"

    def __init__(self, client: Optional[CrossrefClient] = None):
        self.client = client or CrossrefClient()

    def check(self, doi: str, work: Optional[Work] = None) -> SourceVerdict:
        return self.client.check(doi)


class PubMedAdapter(SourceAdapter):
    name = SOURCE_PUBMED
    label = "PubMed"

    def __init__(self, client: Optional[PubMedClient] = None):
        self.client = client or PubMedClient()

    def check(self, doi: str, work: Optional[Work] = None) -> SourceVerdict:
        return self.client.check(doi)


def default_adapters(index: RetractionIndex) -> list[SourceAdapter]:
    """Every provider family, in evidence order."""
    return [
        RetractionIndexAdapter(index),
        SelfFlagAdapter(),
        CrossrefAdapter(),
        PubMedAdapter(),
    ]
