"""
Schemas for codescan.

Defines ReviewRequest (input to the orchestrator), ReviewResult (output of one
review) and ProjectReport (output of a project scan). Field names and value
ranges of ReviewResult / Issue are the stable contract that renderers depend on.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    SUGGESTION = "Suggestion"


class Engine(str, Enum):
    """Inference backend actually used for a review."""

    CLOUD = "cloud"
    LOCAL = "local"


class EngineMode(str, Enum):
    """Engine requested by the caller. AUTO probes the cloud proxy first."""

    AUTO = "auto"
    CLOUD = "cloud"
    LOCAL = "local"


DecodeTier = Literal["strict", "sanitized", "salvaged", "fallback"]


# ---------------------------------------------------------------------------
# Standards catalog entry
# ---------------------------------------------------------------------------


class Standard(BaseModel):
    """One selectable rule-set. Contributes `prompt` to the review prompt."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    icon: str = ""
    description: str = ""
    prompt: str


# ---------------------------------------------------------------------------
# Review request / options
# ---------------------------------------------------------------------------


class ReviewRequest(BaseModel):
    """
    What the caller sends in. Not validated here: the orchestrator rejects
    empty code / language / standards with a descriptive ReviewValidationError.
    """

    code: str = ""
    language: str = ""
    standards: List[str] = Field(default_factory=list)  # ordered standard ids
    custom_rules: str = ""


class ReviewOptions(BaseModel):
    """Per-call options shared by single reviews and project scans."""

    mode: EngineMode = EngineMode.AUTO
    local_model: Optional[str] = None  # overrides engines.local.model
    cloud_model: Optional[str] = None  # overrides engines.cloud.model
    timeout: Optional[float] = None  # seconds per inference call; engine default when None


# ---------------------------------------------------------------------------
# Review result: output of the decoder / orchestrator
# ---------------------------------------------------------------------------


class Issue(BaseModel):
    """One problem found by the model."""

    id: int
    severity: Severity = Severity.SUGGESTION
    category: str = ""
    line_reference: str = ""
    title: str = ""
    problem: str = ""
    improved_code: str = ""
    explanation: str = ""


class ReviewResult(BaseModel):
    """Validated review. `score` is always present and within 0..100."""

    score: int = Field(ge=0, le=100)
    summary: str
    issues: List[Issue] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    language: str = ""
    standards: List[str] = Field(default_factory=list)
    reviewed_at: str = Field(default_factory=utc_timestamp)
    engine: Optional[Engine] = None
    decode_tier: DecodeTier = "strict"


# ---------------------------------------------------------------------------
# Project scan
# ---------------------------------------------------------------------------


class ProjectFile(BaseModel):
    """One file handed to the project aggregator. Language detected from path when None."""

    path: str
    code: str
    language: Optional[str] = None


class FileReviewOutcome(BaseModel):
    """Per-file result of a project scan: exactly one of result / error."""

    file_path: str
    language: str = ""
    result: Optional[ReviewResult] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "FileReviewOutcome":
        if (self.result is None) == (self.error is None):
            raise ValueError("FileReviewOutcome needs exactly one of result or error")
        return self

    @property
    def score(self) -> Optional[int]:
        return self.result.score if self.result is not None else None


class ProjectIssue(Issue):
    """Issue tagged with the file it came from."""

    file_path: str
    file_name: str


class ProjectReport(BaseModel):
    """Aggregated report over all files of a project scan."""

    project_name: str
    total_files: int
    average_score: float  # over successful outcomes only
    outcomes: List[FileReviewOutcome] = Field(default_factory=list)
    all_issues: List[ProjectIssue] = Field(default_factory=list)
    criticals: List[ProjectIssue] = Field(default_factory=list)
    warnings: List[ProjectIssue] = Field(default_factory=list)
    suggestions: List[ProjectIssue] = Field(default_factory=list)
    security_issues: List[ProjectIssue] = Field(default_factory=list)
    worst_files: List[FileReviewOutcome] = Field(default_factory=list)
    failed_files: int = 0
    cancelled: bool = False
    generated_at: str = Field(default_factory=utc_timestamp)
