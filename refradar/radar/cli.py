# radar/cli.py

import sys
import shlex
import argparse
from colorama import Fore

from radar.api import RadarAPI, read_doi_file
from radar.core.errors import ProviderError
from radar.core.status import Status
from radar.database.store import open_store
from radar.globals import (
    API_HOST,
    API_PORT,
    BATCH_LIMIT,
    DEFAULT_STORE_PATH,
    OUTER_TIME_BUDGET,
    REFERENCE_BATCH_SIZE,
    RETRACTION_INDEX_URL,
)
from radar.logger import ColorLogger
from radar.sources.retraction_index import RetractionIndex

cli_log = ColorLogger("CLI", include_timestamps=False, include_threading_id=False)


def add_store_options(parser: argparse.ArgumentParser) -> None:
    """Where job rows live: a CSV file (default) or the Postgres table."""
    parser.add_argument(
        "--store",
        default=str(DEFAULT_STORE_PATH),
        help=f"CSV file holding job rows (default: {DEFAULT_STORE_PATH}).",
    )
    parser.add_argument(
        "--postgres",
        action="store_true",
        help="Use the radar_jobs table in PostgreSQL instead of a CSV file.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the full CLI argument parser (reused in REPL)."""
    parser = argparse.ArgumentParser(
        prog="radar",
        description="Retraction Radar Command Line Interface",
        add_help=True,
    )
    parser.add_argument(
        "--index",
        default=RETRACTION_INDEX_URL,
        help="URL or local path of the retraction dataset (CSV or one DOI per line).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=REFERENCE_BATCH_SIZE,
        help=f"Reference ids per OpenAlex request (default: {REFERENCE_BATCH_SIZE}).",
    )
    parser.add_argument(
        "--no-short-circuit",
        action="store_true",
        help="Evaluate references even when the focal DOI is already in the retraction dataset.",
    )
    subparsers = parser.add_subparsers(dest="category", required=True)

    # =========================
    # ANALYZE
    # =========================
    analyze_parser = subparsers.add_parser("analyze", help="Screen the reference list of one DOI.")
    analyze_parser.add_argument("doi", help="DOI, doi: URI or https://doi.org/ link.")
    analyze_parser.add_argument(
        "--export",
        metavar="DIR",
        help="Also write the CSV export into this directory.",
    )
    analyze_parser.add_argument(
        "--all",
        action="store_true",
        help="List every reference, not only the ones that need attention.",
    )

    # =========================
    # BATCH
    # =========================
    batch_parser = subparsers.add_parser("batch", help="Resumable batch screening of many DOIs.")
    batch_subp = batch_parser.add_subparsers(dest="batch_cmd", required=True)

    enqueue_p = batch_subp.add_parser("enqueue", help="Add DOIs as pending rows.")
    enqueue_p.add_argument("dois", nargs="*", help="DOIs to add.")
    enqueue_p.add_argument("--file", help="Text file with one DOI per line.")
    add_store_options(enqueue_p)

    run_p = batch_subp.add_parser("run", help="Process the next batch of pending rows.")
    run_p.add_argument(
        "--limit",
        type=int,
        default=BATCH_LIMIT,
        help=f"Maximum rows in this batch (default: {BATCH_LIMIT}).",
    )
    add_store_options(run_p)

    all_p = batch_subp.add_parser("all", help="Keep running batches until nothing is pending.")
    all_p.add_argument(
        "--budget",
        type=float,
        default=OUTER_TIME_BUDGET,
        help=f"Overall time budget in seconds (default: {OUTER_TIME_BUDGET:.0f}).",
    )
    add_store_options(all_p)

    status_p = batch_subp.add_parser("status", help="Count job rows by status.")
    add_store_options(status_p)

    # =========================
    # DB
    # =========================
    for db_alias in ("db", "database"):
        db_parser = subparsers.add_parser(db_alias, help="Database operations")
        db_subp = db_parser.add_subparsers(dest="db_cmd", required=True)
        init_p = db_subp.add_parser("init", help="Create the radar_jobs table.")
        init_p.add_argument("--db-name", help="Override database name.")
        init_p.add_argument("--db-user", help="Override database user.")
        init_p.add_argument("--db-host", help="Override database host.")
        init_p.add_argument("--db-port", help="Override database port.")

    # =========================
    # SERVE
    # =========================
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve_parser.add_argument("--host", default=API_HOST, help=f"Bind address (default: {API_HOST}).")
    serve_parser.add_argument("--port", type=int, default=API_PORT, help=f"Port (default: {API_PORT}).")

    return parser


def make_api(args: argparse.Namespace, db_config: dict | None = None) -> RadarAPI:
    return RadarAPI(
        index=RetractionIndex(args.index),
        db_config=db_config,
        show_progress=True,
        batch_size=args.batch_size,
        short_circuit_indexed=not args.no_short_circuit,
    )


def print_analysis(analysis, show_all: bool) -> None:
    resolution = analysis.resolution
    work = resolution.work

    if work is not None:
        print(f"Title:      {work.title}")
        print(f"Year:       {work.year or '-'}")
        print(f"References: {len(work.referenced_work_ids)}")
    print(f"Outcome:    {resolution.status.value} ({resolution.reason})")

    refs = resolution.references if show_all else analysis.report.interesting
    if refs:
        print()
    for r in refs:
        label = f"{r.status.label:<22}"
        print(f"{r.index:>4}  {label}  {r.year or '----'}  {r.doi_or_id:<40}  {r.title}")

    counts = analysis.report.as_dict()
    nonzero = [f"{s.value}={counts[s.value]}" for s in Status if counts[s.value]]
    if nonzero:
        print()
        print(f"Total {counts['total']}: " + ", ".join(nonzero))
    cli_log.info(analysis.summary)


def run_command(args: argparse.Namespace) -> None:
    """
    Dispatch parsed args to the appropriate handler.
    This is called both from one-shot mode and REPL mode.
    """

    # =========================
    # ANALYZE
    # =========================
    if args.category == "analyze":
        api = make_api(args)
        try:
            analysis = api.analyze(args.doi)
        except ValueError as e:
            cli_log.error(str(e))
            return
        except ProviderError as e:
            cli_log.error(f"Could not resolve {args.doi}: {e}")
            return

        print_analysis(analysis, show_all=args.all)

        if args.export:
            api.export(analysis, directory=args.export)
        return

    # =========================
    # BATCH
    # =========================
    if args.category == "batch":
        store = open_store(args.store, postgres=args.postgres)
        api = make_api(args)

        if args.batch_cmd == "enqueue":
            dois = list(args.dois or [])
            if args.file:
                dois.extend(read_doi_file(args.file))
            if not dois:
                cli_log.error("No DOIs given. Pass them as arguments or with --file.")
                return
            api.enqueue(store, dois)

        elif args.batch_cmd == "run":
            summary = api.run_batch(store, limit=args.limit)
            cli_log.info(f"Processed {summary.processed} rows ({summary.errors} errors).")
            if summary.stopped_for_budget:
                cli_log.warn("Stopped early for the time budget; run again to continue.")
            cli_log.info(f"{store.pending_count()} rows still pending.")

        elif args.batch_cmd == "all":
            summary = api.run_all(store, outer_budget=args.budget)
            cli_log.info(
                f"Processed {summary.processed} rows in {summary.batches} batches ({summary.errors} errors)."
            )
            cli_log.info(f"{store.pending_count()} rows still pending.")

        elif args.batch_cmd == "status":
            for key, n in sorted(api.job_status(store).items()):
                print(f"{key:<16} {n}")
        return

    # =========================
    # DB
    # =========================
    if args.category in ("db", "database"):
        if args.db_cmd == "init":
            cli_log.info("Creating job table...")
            db_config = {
                "name": args.db_name,
                "user": args.db_user,
                "host": args.db_host,
                "port": args.db_port,
            }
            make_api(args, db_config={k: v for k, v in db_config.items() if v}).init_database()
        return

    # =========================
    # SERVE
    # =========================
    if args.category == "serve":
        import uvicorn

        cli_log.info(f"Serving on http://{args.host}:{args.port}")
        uvicorn.run("radar.main:app", host=args.host, port=args.port)
        return

    cli_log.error("Unknown command.")


def repl(parser: argparse.ArgumentParser) -> None:
    """
    Interactive REPL:
        radar> analyze 10.1038/nature12373
        radar> batch enqueue --file dois.txt
        radar> batch run --limit 5
        radar> exit
    """
    cli_log.info(
        "Interactive mode. Type 'help' for global help, "
        "'exit' or 'quit' to leave."
    )

    while True:
        try:
            line = input("radar> ")
        except (EOFError, KeyboardInterrupt):
            print()
            cli_log.warn("Exiting interactive mode.")
            break

        line = line.strip()
        if not line:
            continue

        if line in ("exit", "quit", "q"):
            cli_log.info("Goodbye.")
            break

        if line in ("help", "?"):
            parser.print_help()
            continue

        tokens = shlex.split(line)
        try:
            args = parser.parse_args(tokens)
        except SystemExit:
            # argparse exits on bad input; stay in the REPL
            continue

        try:
            run_command(args)
        except KeyboardInterrupt:
            cli_log.warn("Command interrupted by user (Ctrl+C).")
        except Exception as e:
            cli_log.error(f"Command failed: {e}")


def main():
    cli_log.banner("Retraction Radar", subtitle="Reference screening CLI", color=Fore.RED)

    parser = build_parser()

    # One-shot mode: `radar analyze 10.1000/xyz`
    if len(sys.argv) > 1:
        args = parser.parse_args()
        run_command(args)
        return

    repl(parser)


if __name__ == "__main__":
    main()
