"""
HTTP API for codescan.

Run: python -m codescan.server
Then POST to http://localhost:3001/api/review. GET /health is the endpoint the
auto-mode connectivity probe targets.
"""
import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from codescan.config_loader import get_settings
from codescan.errors import (
    EngineUnavailableError,
    InferenceError,
    InferenceTimeoutError,
    ReviewValidationError,
)
from codescan.languages import LANGUAGES
from codescan.project import review_project
from codescan.reviewer import review_code
from codescan.schemas import (
    EngineMode,
    ProjectFile,
    ProjectReport,
    ReviewOptions,
    ReviewRequest,
    ReviewResult,
)
from codescan.standards import list_standards

logger = logging.getLogger(__name__)

app = FastAPI(title="codescan", version="0.1.0")


class ReviewBody(BaseModel):
    code: str
    language: str
    standards: List[str]
    custom_rules: str = ""
    mode: EngineMode = EngineMode.AUTO
    local_model: Optional[str] = None
    timeout: Optional[float] = None


class ProjectBody(BaseModel):
    project_name: str = "project"
    files: List[ProjectFile] = Field(default_factory=list)
    standards: List[str]
    custom_rules: str = ""
    mode: EngineMode = EngineMode.AUTO
    local_model: Optional[str] = None
    timeout: Optional[float] = None
    concurrency: Optional[int] = Field(default=None, ge=1, le=16)


def _options(body) -> ReviewOptions:
    return ReviewOptions(mode=body.mode, local_model=body.local_model, timeout=body.timeout)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/standards")
def api_standards():
    return [s.model_dump() for s in list_standards()]


@app.get("/api/languages")
def api_languages():
    return [
        {"id": lang.id, "label": lang.label, "group": lang.group, "ext": list(lang.patterns)}
        for lang in LANGUAGES
    ]


@app.post("/api/review", response_model=ReviewResult)
async def api_review(body: ReviewBody):
    """Review one snippet. Returns ReviewResult as JSON."""
    request = ReviewRequest(
        code=body.code,
        language=body.language,
        standards=body.standards,
        custom_rules=body.custom_rules,
    )
    try:
        return await review_code(request, _options(body), settings=get_settings())
    except ReviewValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InferenceTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except (InferenceError, EngineUnavailableError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Review failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/review/project", response_model=ProjectReport)
async def api_review_project(body: ProjectBody):
    """Review every file; per-file failures are reported inside the ProjectReport."""
    if not body.files:
        raise HTTPException(status_code=400, detail="No files provided")
    if not body.standards:
        raise HTTPException(status_code=400, detail="No standards selected")
    return await review_project(
        body.files,
        standards=body.standards,
        custom_rules=body.custom_rules,
        options=_options(body),
        project_name=body.project_name,
        concurrency=body.concurrency,
        settings=get_settings(),
    )


def main():
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=3001)


if __name__ == "__main__":
    main()
