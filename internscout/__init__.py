"""
InternScout: internship discovery pipeline.

Collects postings from community feeds, public job APIs, ATS boards and
job-board pages, dedupes them within and across runs, scores them against
a candidate profile and stores the new ones in SQLite.
"""

__version__ = "1.0.0"

from internscout.models import CandidateProfile, RawPosting, RunLog, ScoredPosting
from internscout.orchestrator import PipelineResult, run_once, run_pipeline_once

__all__ = [
    "CandidateProfile",
    "RawPosting",
    "RunLog",
    "ScoredPosting",
    "PipelineResult",
    "run_once",
    "run_pipeline_once",
]
