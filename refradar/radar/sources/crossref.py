# radar/sources/crossref.py

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from radar.core.errors import Malformed
from radar.core.merge import SOURCE_CROSSREF
from radar.core.models import SourceVerdict
from radar.core.status import Status, most_severe
from radar.globals import CONTACT_EMAIL, CROSSREF_BASE_URL
from radar.sources.http import HttpClient

SOURCE_NAME = "Crossref"

# Relations on the retracted work that point at its retraction notice
RETRACTION_RELATIONS = ("is-retracted-by", "has-retraction")


@dataclass(frozen=True)
class UpdateSignal:
    update_type: str
    relation: str  # "update-to", "updated-by" or a relation name


def extract_update_signals(message: Dict[str, Any]) -> List[UpdateSignal]:
    """Pull update and relation signals out of a Crossref work message."""
    signals: List[UpdateSignal] = []

    for key in ("update-to", "updated-by"):
        entries = message.get(key) or message.get(key.replace("-", "_")) or []
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            update_type = entry.get("update-type") or entry.get("type") or entry.get("update_type") or ""
            if update_type:
                signals.append(UpdateSignal(update_type=str(update_type), relation=key))

    relation = message.get("relation") or {}
    if isinstance(relation, dict):
        for name in relation:
            clean = name.rstrip(":")
            if clean in RETRACTION_RELATIONS:
                signals.append(UpdateSignal(update_type="retraction", relation=clean))

    return signals


def _signal_status(update_type: str) -> Optional[Status]:
    t = update_type.lower()
    if "retract" in t:
        return Status.RETRACTED
    if "expression" in t:
        return Status.EXPRESSION_OF_CONCERN
    if "correction" in t or "erratum" in t:
        return Status.CORRECTED
    if "withdraw" in t:
        return Status.WITHDRAWN
    return None


_SIGNAL_NOTES = {
    Status.RETRACTED: "retraction",
    Status.EXPRESSION_OF_CONCERN: "expression of concern",
    Status.CORRECTED: "correction/erratum",
    Status.WITHDRAWN: "withdrawal",
}


def classify_update_signals(signals: List[UpdateSignal]) -> SourceVerdict:
    """Most severe status among the signals, with one note per matched signal."""
    statuses: List[Status] = []
    notes: List[str] = []

    for signal in signals:
        status = _signal_status(signal.update_type)
        if status is None:
            continue
        statuses.append(status)
        if signal.relation in RETRACTION_RELATIONS:
            notes.append(f"Crossref relation: {signal.relation}.")
        else:
            notes.append(f"Crossref: {signal.relation} {_SIGNAL_NOTES[status]}.")

    if not statuses:
        return SourceVerdict(SOURCE_CROSSREF, Status.OK, "Crossref: no retraction/correction signals found.")

    # Duplicate notes add nothing
    notes = list(dict.fromkeys(notes))
    return SourceVerdict(SOURCE_CROSSREF, most_severe(statuses), " ".join(notes))


class CrossrefClient:
    """Registrar update feed backed by the Crossref REST API."""

    def __init__(self, http: Optional[HttpClient] = None, base_url: str = CROSSREF_BASE_URL,
                 mailto: str = CONTACT_EMAIL):
        self.http = http or HttpClient(SOURCE_NAME)
        self.base_url = base_url.rstrip("/")
        self.mailto = mailto

    def get_update_signals(self, doi: str) -> List[UpdateSignal]:
        params = {"mailto": self.mailto} if self.mailto else None
        data = self.http.get_json(f"{self.base_url}/works/{quote(doi.strip(), safe='/')}", params=params)
        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            raise Malformed(SOURCE_NAME, "response without a message object")
        return extract_update_signals(message)

    def check(self, doi: str) -> SourceVerdict:
        return classify_update_signals(self.get_update_signals(doi))
