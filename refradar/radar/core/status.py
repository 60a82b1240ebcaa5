# radar/core/status.py

from enum import Enum


class Status(str, Enum):
    """Retraction status of a single work, least to most severe."""
    OK = "ok"
    UNKNOWN = "unknown"                 # a provider failed to answer
    NO_DOI = "no_doi"                   # nothing to look up
    CORRECTED = "corrected"
    EXPRESSION_OF_CONCERN = "expression_of_concern"
    WITHDRAWN = "withdrawn"
    RETRACTED = "retracted"

    @property
    def severity(self) -> int:
        return SEVERITY[self]

    @property
    def precedence(self) -> int:
        return PRECEDENCE[self]

    @property
    def rank(self) -> tuple[int, int]:
        """Sort key: severity first, tie-break precedence second."""
        return SEVERITY[self], PRECEDENCE[self]

    @property
    def label(self) -> str:
        return LABELS[self]


class RowStatus(str, Enum):
    """Outcome of screening one focal DOI, committed back to its job row."""
    RETRACTED = "retracted"             # the focal work itself
    REFS_RETRACTED = "refs_retracted"
    REFS_FLAGGED = "refs_flagged"
    CLEAN = "clean"
    NO_REFERENCES = "no_references"
    ERROR = "error"


SEVERITY = {
    Status.OK: 0,
    Status.UNKNOWN: 1,
    Status.NO_DOI: 1,
    Status.CORRECTED: 3,
    Status.EXPRESSION_OF_CONCERN: 4,
    Status.WITHDRAWN: 4,
    Status.RETRACTED: 5,
}

# Only breaks severity ties between the flagged statuses
PRECEDENCE = {
    Status.OK: 0,
    Status.UNKNOWN: 0,
    Status.NO_DOI: 0,
    Status.CORRECTED: 1,
    Status.WITHDRAWN: 2,
    Status.EXPRESSION_OF_CONCERN: 3,
    Status.RETRACTED: 4,
}

LABELS = {
    Status.OK: "OK",
    Status.UNKNOWN: "UNKNOWN",
    Status.NO_DOI: "NO DOI",
    Status.CORRECTED: "CORRECTED / ERRATUM",
    Status.EXPRESSION_OF_CONCERN: "EXPRESSION OF CONCERN",
    Status.WITHDRAWN: "WITHDRAWN",
    Status.RETRACTED: "RETRACTED",
}

# Statuses that mark a reference as needing a human look
FLAGGED = frozenset({
    Status.CORRECTED,
    Status.EXPRESSION_OF_CONCERN,
    Status.WITHDRAWN,
    Status.RETRACTED,
})


def check_exhaustive(table: dict, name: str) -> None:
    missing = [s.value for s in Status if s not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")


for _table, _name in ((SEVERITY, "SEVERITY"), (PRECEDENCE, "PRECEDENCE"), (LABELS, "LABELS")):
    check_exhaustive(_table, _name)


def most_severe(statuses) -> Status:
    """Most severe status of an iterable, OK when empty."""
    return max(statuses, key=lambda s: s.rank, default=Status.OK)
