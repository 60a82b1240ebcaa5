# radar/globals.py

# Global configuration shared across the engine, read once from the environment
import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Global paths
DEFAULT_STORE_PATH = Path(os.getenv("RADAR_STORE_PATH", "radar_jobs.csv"))

# Shared env-based database configuration
ENV_DB_NAME = os.getenv("RADAR_DB_NAME", "radar")
ENV_DB_USER = os.getenv("RADAR_DB_USER", "admin")
ENV_DB_PASSWORD = os.getenv("RADAR_DB_PASSWORD", "admin")
ENV_DB_HOST = os.getenv("RADAR_DB_HOST", "localhost")
ENV_DB_PORT = os.getenv("RADAR_DB_PORT", "5432")

ENV_VARIABLES = {
    "name": ENV_DB_NAME,
    "user": ENV_DB_USER,
    "password": ENV_DB_PASSWORD,
    "host": ENV_DB_HOST,
    "port": ENV_DB_PORT,
}

# Providers
OPENALEX_BASE_URL = os.getenv("RADAR_OPENALEX_BASE_URL", "https://api.openalex.org")
CROSSREF_BASE_URL = os.getenv("RADAR_CROSSREF_BASE_URL", "https://api.crossref.org")
PUBMED_BASE_URL = os.getenv("RADAR_PUBMED_BASE_URL", "https://eutils.ncbi.nlm.nih.gov/entrez/eutils")
PUBMED_API_KEY = os.getenv("RADAR_PUBMED_API_KEY", "")
CONTACT_EMAIL = os.getenv("RADAR_CONTACT_EMAIL", "")

RETRACTION_INDEX_URL = os.getenv(
    "RADAR_RETRACTION_INDEX_URL",
    "https://gitlab.com/crossref/retraction-watch-data/-/raw/main/retraction_watch.csv?ref_type=heads",
)

# HTTP + retry
HTTP_TIMEOUT = float(os.getenv("RADAR_HTTP_TIMEOUT", "30"))
MAX_RETRIES = int(os.getenv("RADAR_MAX_RETRIES", "3"))
BACKOFF_BASE_DELAY = float(os.getenv("RADAR_BACKOFF_BASE_DELAY", "1.0"))
BACKOFF_MULTIPLIER = float(os.getenv("RADAR_BACKOFF_MULTIPLIER", "2.0"))

# Reference resolution
REFERENCE_BATCH_SIZE = int(os.getenv("RADAR_REFERENCE_BATCH_SIZE", "40"))
MAX_REFERENCES = int(os.getenv("RADAR_MAX_REFERENCES", "0"))  # 0 = no cap
SHORT_CIRCUIT_INDEXED = _env_bool("RADAR_SHORT_CIRCUIT_INDEXED", True)

# Batch runner (seconds)
ROW_DELAY = float(os.getenv("RADAR_ROW_DELAY", "1.0"))
BATCH_LIMIT = int(os.getenv("RADAR_BATCH_LIMIT", "10"))
TIME_BUDGET = float(os.getenv("RADAR_TIME_BUDGET", "330"))
SAFETY_MARGIN = float(os.getenv("RADAR_SAFETY_MARGIN", "30"))
OUTER_TIME_BUDGET = float(os.getenv("RADAR_OUTER_TIME_BUDGET", "3600"))

# API server
API_HOST = os.getenv("RADAR_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("RADAR_API_PORT", "8000"))
