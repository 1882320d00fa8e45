"""
codescan: LLM-backed code review pipeline.

Caller passes a ReviewRequest (or a list of ProjectFile); we return a
ReviewResult (or a ProjectReport). The model is an opaque text-in/text-out
backend reached over HTTP, either a cloud proxy or a local Ollama runtime.
"""
from codescan.schemas import (
    Engine,
    EngineMode,
    FileReviewOutcome,
    Issue,
    ProjectFile,
    ProjectReport,
    ReviewOptions,
    ReviewRequest,
    ReviewResult,
    Severity,
    Standard,
)
from codescan.standards import get_standard, list_standards
from codescan.languages import detect_language
from codescan.response_decoder import decode_review_response
from codescan.reviewer import CodeReviewer, review_code
from codescan.project import build_project_report, review_project

__all__ = [
    "Engine",
    "EngineMode",
    "FileReviewOutcome",
    "Issue",
    "ProjectFile",
    "ProjectReport",
    "ReviewOptions",
    "ReviewRequest",
    "ReviewResult",
    "Severity",
    "Standard",
    "get_standard",
    "list_standards",
    "detect_language",
    "decode_review_response",
    "CodeReviewer",
    "review_code",
    "build_project_report",
    "review_project",
]
