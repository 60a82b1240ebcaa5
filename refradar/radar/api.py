# radar/api.py

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from colorama import Fore

from radar.core.models import Resolution
from radar.database.db_utils import init_database
from radar.database.store import JobStore
from radar.engine.classifier import ReferenceClassifier
from radar.engine.report import AggregateReport, aggregate, export_csv, export_filename, summarize
from radar.engine.resolver import ReferenceResolver
from radar.engine.runner import BatchJobRunner, BatchSummary, RunSummary
from radar.globals import ENV_VARIABLES, OUTER_TIME_BUDGET
from radar.logger import ColorLogger
from radar.sources.adapters import SourceAdapter, default_adapters
from radar.sources.openalex import OpenAlexClient
from radar.sources.retraction_index import RetractionIndex


@dataclass
class Analysis:
    resolution: Resolution
    report: AggregateReport

    @property
    def summary(self) -> str:
        if not self.resolution.references:
            return self.resolution.reason
        return summarize(self.report)


class RadarAPI:
    """Main entry point: wires providers, index, resolver and runner together."""

    def __init__(
        self,
        index: Optional[RetractionIndex] = None,
        works: Optional[OpenAlexClient] = None,
        adapters: Optional[Sequence[SourceAdapter]] = None,
        db_config: Optional[Dict[str, str]] = None,
        show_progress: bool = False,
        **resolver_options,
    ) -> None:
        self.log = ColorLogger("API", tag_color=Fore.GREEN, include_timestamps=False)

        self.db_config = dict(ENV_VARIABLES)
        self.db_config.update(db_config or {})

        self.index = index if index is not None else RetractionIndex()
        self.works = works if works is not None else OpenAlexClient()
        self.classifier = ReferenceClassifier(
            adapters if adapters is not None else default_adapters(self.index)
        )
        self.resolver = ReferenceResolver(
            self.works,
            self.index,
            self.classifier,
            show_progress=show_progress,
            **resolver_options,
        )
        self.show_progress = show_progress

    # Single DOI
    def analyze(self, doi: str) -> Analysis:
        """Screen one DOI's reference list. Provider errors on the focal work propagate."""
        self.log.info(f"Analyzing {doi}...")
        resolution = self.resolver.resolve(doi)
        analysis = Analysis(resolution=resolution, report=aggregate(resolution.references))
        self.log.success(analysis.summary)
        return analysis

    def export(self, analysis: Analysis, directory: Optional[str | Path] = None) -> Tuple[str, str]:
        """
        Render the CSV export of an analysis. Returns (filename, csv_text);
        the file is also written when `directory` is given.
        """
        filename = export_filename(analysis.resolution.doi)
        text = export_csv(analysis.resolution.references)

        if directory is not None:
            path = Path(directory) / filename
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8", newline="")
            self.log.success(f"Wrote {path}")
        return filename, text

    # Batch jobs
    def runner(self, store: JobStore, **options) -> BatchJobRunner:
        options.setdefault("show_progress", self.show_progress)
        return BatchJobRunner(store, self.resolver, **options)

    def enqueue(self, store: JobStore, dois: Iterable[str]) -> int:
        added = store.enqueue(dois)
        self.log.info(f"Queued {added} DOIs.")
        return added

    def run_batch(self, store: JobStore, limit: Optional[int] = None, **options) -> BatchSummary:
        return self.runner(store, **options).process_next_batch(limit)

    def run_all(self, store: JobStore, outer_budget: float = OUTER_TIME_BUDGET, **options) -> RunSummary:
        return self.runner(store, **options).process_all(outer_budget=outer_budget)

    def job_status(self, store: JobStore) -> Dict[str, int]:
        """Row counts by committed status; pending rows under "pending"."""
        counts: Dict[str, int] = {}
        for row in store.rows():
            key = row.status or "pending"
            counts[key] = counts.get(key, 0) + 1
        return counts

    # Database lifecycle
    def init_database(self) -> None:
        init_database(self.db_config)


def read_doi_file(path: str | Path) -> List[str]:
    """DOIs from a text file, one per line; lines starting with "#" are skipped."""
    dois: List[str] = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            dois.append(line)
    return dois
