# radar/core/models.py

from dataclasses import dataclass, field
from typing import Optional, List

from radar.core.status import Status, RowStatus


@dataclass(frozen=True)
class Work:
    id: str
    doi: Optional[str]
    title: str
    year: Optional[int]
    is_retracted: bool = False
    referenced_work_ids: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    venue: Optional[str] = None


@dataclass(frozen=True)
class SourceVerdict:
    source: str
    status: Status
    evidence: str = ""


@dataclass(frozen=True)
class MergedVerdict:
    status: Status
    evidence: str


@dataclass
class Reference:
    index: int
    doi: Optional[str]
    work_id: Optional[str]
    title: str
    year: Optional[int]
    status: Status
    evidence: str = ""
    authors: List[str] = field(default_factory=list)
    venue: Optional[str] = None

    @property
    def doi_or_id(self) -> str:
        return self.doi or self.work_id or ""


@dataclass
class Resolution:
    doi: str
    status: RowStatus
    reason: str
    work: Optional[Work] = None
    references: List[Reference] = field(default_factory=list)
    truncated: bool = False

    @property
    def refs_evaluated(self) -> int:
        return len(self.references)

    @property
    def retracted_dois(self) -> List[str]:
        return [r.doi for r in self.references if r.status is Status.RETRACTED and r.doi]


@dataclass(frozen=True)
class RowResult:
    status: RowStatus
    reason: str
    refs_evaluated: int = 0
    retracted_dois: List[str] = field(default_factory=list)

    @classmethod
    def from_resolution(cls, resolution: Resolution) -> "RowResult":
        return cls(
            status=resolution.status,
            reason=resolution.reason,
            refs_evaluated=resolution.refs_evaluated,
            retracted_dois=resolution.retracted_dois,
        )

    @classmethod
    def error(cls, reason: str) -> "RowResult":
        return cls(status=RowStatus.ERROR, reason=reason)


@dataclass
class JobRow:
    """
    One DOI to screen, as held by the caller's store.

    `key` is whatever the store needs to find the row again
    (list position, primary key, ...).
    """
    key: int
    doi: str
    status: str = ""
    reason: str = ""
    refs_evaluated: int = 0
    retracted_dois: List[str] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return not (self.status or "").strip()

    def apply(self, result: RowResult) -> None:
        self.status = result.status.value
        self.reason = result.reason
        self.refs_evaluated = result.refs_evaluated
        self.retracted_dois = list(result.retracted_dois)
