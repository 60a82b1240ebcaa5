# radar/core/doi.py

import re

_PREFIX_RE = re.compile(r"^(?:https?://)?(?:www\.|dx\.)?doi\.org/|^doi:\s*")
_DOI_RE = re.compile(r"^10\.\d+/\S.*$")
_TRAILING_RE = re.compile(r"[\s.,;]+$")


def normalize_doi(value: str | None) -> str:
    """
    Canonicalize free-form DOI input.

    Accepts bare DOIs, `doi:` prefixed values and resolver URLs:
        "https://doi.org/10.1000/ABC" -> "10.1000/abc"
        "doi: 10.1000/abc."          -> "10.1000/abc"

    Returns "" when no DOI can be found. Callers treat "" as "no DOI".
    """
    if not value or not isinstance(value, str):
        return ""

    text = value.strip().lower()
    text = _PREFIX_RE.sub("", text)

    # DOI embedded in some other text: keep from the registrant prefix on
    idx = text.find("10.")
    if idx < 0:
        return ""
    text = _TRAILING_RE.sub("", text[idx:])

    if not _DOI_RE.match(text):
        return ""
    return text


def doi_url(doi: str | None) -> str:
    """Resolver link for a DOI, or "" if it does not normalize."""
    norm = normalize_doi(doi)
    return f"https://doi.org/{norm}" if norm else ""
