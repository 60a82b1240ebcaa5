# radar/database/db_utils.py

from getpass import getpass
from typing import Dict, Optional

import psycopg2
from psycopg2 import OperationalError
from colorama import Fore

from radar.globals import ENV_VARIABLES
from radar.logger import ColorLogger

log = ColorLogger("DB", tag_color=Fore.BLUE, include_timestamps=False)

JOBS_TABLE = "radar_jobs"


def _connect_with_optional_prompt(dbname: str, user: str, password: str, host: str, port: str, interactive: bool = True):
    """
    Try to connect with given password.
    If password is empty or invalid and we are interactive, prompt once and retry.
    Returns (connection, final_password).
    """
    attempted_prompt = False
    current_password = password

    while True:
        try:
            conn = psycopg2.connect(dbname=dbname, user=user, password=current_password, host=host, port=port)
            return conn, current_password

        except OperationalError as e:
            msg = str(e)
            needs_prompt = (
                interactive
                and not attempted_prompt
                and (not current_password or "password authentication failed" in msg.lower())
            )

            if needs_prompt:
                log.warn("RADAR_DB_PASSWORD is missing or invalid.")
                current_password = getpass(f"Enter password for PostgreSQL user '{user}': ")
                attempted_prompt = True
                continue

            log.error(f"Could not connect to Postgres at {host}:{port}/{dbname}: {e}")
            raise


def get_conn(db_config: Optional[Dict[str, str]] = None, interactive: bool = True):
    """
    Get a connection to the job database. Missing keys fall back to the
    RADAR_DB_* environment variables.
    """
    config = dict(ENV_VARIABLES)
    config.update({k: v for k, v in (db_config or {}).items() if v})

    conn, _ = _connect_with_optional_prompt(
        dbname=config["name"],
        user=config["user"],
        password=config["password"],
        host=config["host"],
        port=config["port"],
        interactive=interactive,
    )
    return conn


def ensure_jobs_table(cur) -> None:
    """
    Ensure the job row table exists. A row is pending while its status is empty.
    """
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {JOBS_TABLE} (
            id              SERIAL PRIMARY KEY,
            doi             TEXT NOT NULL,
            status          TEXT NOT NULL DEFAULT '',
            reason          TEXT NOT NULL DEFAULT '',
            refs_evaluated  INTEGER NOT NULL DEFAULT 0,
            retracted_dois  TEXT[] NOT NULL DEFAULT '{{}}',
            updated_at      TIMESTAMPTZ
        );
        """
    )
    cur.execute(
        f"CREATE INDEX IF NOT EXISTS {JOBS_TABLE}_pending_idx ON {JOBS_TABLE} (id) WHERE status = '';"
    )


def init_database(db_config: Optional[Dict[str, str]] = None) -> None:
    """Create the job table if needed."""
    conn = get_conn(db_config)
    cur = conn.cursor()
    try:
        ensure_jobs_table(cur)
        conn.commit()
        log.success(f"Table '{JOBS_TABLE}' is ready.")
    finally:
        cur.close()
        conn.close()
