# radar/main.py

"""
FastAPI application exposing single-DOI screening and CSV export.
"""

from typing import List, Optional
from fastapi import FastAPI, Query, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from radar.api import RadarAPI
from radar.core.doi import doi_url, normalize_doi
from radar.core.errors import NotFound, ProviderError
from radar.core.status import Status
from radar.engine.report import export_csv, export_filename, format_citation


app = FastAPI(
    title="Retraction Radar API",
    description="Screens a work's reference list for retractions, corrections and expressions of concern",
    version="0.1.0",
)

# Shared engine; providers are only contacted on request
engine = RadarAPI()


class ReferenceResponse(BaseModel):
    """One classified reference."""
    index: int = Field(..., description="1-based position in the focal work's reference list")
    status: Status = Field(..., description="Merged retraction status")
    label: str = Field(..., description="Human-readable status")
    year: Optional[int] = Field(None, description="Publication year")
    title: str = Field(..., description="Title of the referenced work")
    doi: Optional[str] = Field(None, description="Normalized DOI, if any")
    work_id: Optional[str] = Field(None, description="OpenAlex work id")
    url: Optional[str] = Field(None, description="Resolver link for the DOI")
    citation: str = Field("", description="Short citation: authors (year). Title. Venue.")
    notes: str = Field("", description="Evidence from each source, in fixed source order")


class AnalysisResponse(BaseModel):
    """Response model for a screened DOI."""
    doi: str = Field(..., description="Normalized focal DOI")
    title: Optional[str] = Field(None, description="Title of the focal work")
    year: Optional[int] = Field(None, description="Publication year of the focal work")
    status: str = Field(..., description="Outcome for the focal DOI")
    reason: str = Field(..., description="Why the outcome was reached")
    summary: str = Field(..., description="One-line summary")
    counts: dict = Field(..., description="Reference counts by status, plus total")
    references: List[ReferenceResponse] = Field(..., description="Classified references")


def _analyze(doi: str):
    if not normalize_doi(doi):
        raise HTTPException(status_code=422, detail=f"Not a DOI: {doi!r}")
    try:
        return engine.analyze(doi)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Retraction Radar API is running"}


@app.get("/analyze", response_model=AnalysisResponse)
def analyze(
    doi: str = Query(..., min_length=1, description="DOI, doi: URI or https://doi.org/ link of the focal work"),
    include_ok: bool = Query(False, description="Also return references with no signal"),
):
    """
    Screen the reference list of one work.

    By default only references that need attention are returned, most
    severe first; `include_ok=true` returns every reference in citation order.
    """
    analysis = _analyze(doi)
    resolution = analysis.resolution
    refs = resolution.references if include_ok else analysis.report.interesting

    return AnalysisResponse(
        doi=resolution.doi,
        title=resolution.work.title if resolution.work else None,
        year=resolution.work.year if resolution.work else None,
        status=resolution.status.value,
        reason=resolution.reason,
        summary=analysis.summary,
        counts=analysis.report.as_dict(),
        references=[
            ReferenceResponse(
                index=r.index,
                status=r.status,
                label=r.status.label,
                year=r.year,
                title=r.title,
                doi=r.doi,
                work_id=r.work_id,
                url=doi_url(r.doi) or None,
                citation=format_citation(r),
                notes=r.evidence,
            )
            for r in refs
        ],
    )


@app.get("/export")
def export(doi: str = Query(..., min_length=1, description="DOI of the focal work")):
    """CSV of the references that need attention, as a download."""
    analysis = _analyze(doi)
    filename = export_filename(analysis.resolution.doi)
    return Response(
        content=export_csv(analysis.resolution.references),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring, including the retraction index state."""
    return {
        "status": "healthy",
        "retraction_index": engine.index.state.value,
        "retraction_index_size": len(engine.index),
    }
