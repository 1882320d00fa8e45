"""
Project aggregator: review many files, fold the outcomes into a ProjectReport.

- Bounded worker pool (asyncio.Semaphore, default settings.project.concurrency)
- Per-file failure isolation: one file's exception becomes that file's error
  outcome and never aborts the scan
- Outcomes keep input order regardless of completion order
- Cooperative cancellation: files not yet started are recorded as cancelled,
  in-flight reviews abort their HTTP call
- Averages, worst files and the security partition are computed once, after
  every file has finished
"""
import asyncio
import logging
from pathlib import PurePath
from typing import Iterable, List, Optional, Sequence

from codescan.config_loader import Settings, get_settings
from codescan.errors import CodeScanError, ReviewCancelledError
from codescan.languages import detect_language
from codescan.resilience import StatusCallback, notify_status
from codescan.reviewer import CodeReviewer
from codescan.schemas import (
    FileReviewOutcome,
    ProjectFile,
    ProjectIssue,
    ProjectReport,
    ReviewOptions,
    ReviewRequest,
    Severity,
)

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Review cancelled"
WORST_FILES_LIMIT = 3
DEFAULT_SECURITY_KEYWORDS = ("security", "owasp")


def _file_name(path: str) -> str:
    return PurePath(path.replace("\\", "/")).name or path


def is_security_issue(category: str, keywords: Iterable[str] = DEFAULT_SECURITY_KEYWORDS) -> bool:
    """Case-insensitive substring match of an issue category against the security taxonomy."""
    lowered = (category or "").lower()
    return any(k.lower() in lowered for k in keywords)


def build_project_report(
    project_name: str,
    outcomes: Sequence[FileReviewOutcome],
    *,
    security_keywords: Iterable[str] = DEFAULT_SECURITY_KEYWORDS,
    cancelled: bool = False,
) -> ProjectReport:
    """
    Fold per-file outcomes into a report. Pure: no I/O, no clock beyond the
    report timestamp.

    average_score only counts files that produced a result, so a transient
    per-file error does not drag the project down to 0.
    """
    keywords = tuple(security_keywords)
    successes = [o for o in outcomes if o.result is not None]
    if successes:
        average = round(sum(o.result.score for o in successes) / len(successes), 1)
    else:
        average = 0.0

    all_issues: List[ProjectIssue] = [
        ProjectIssue(
            **issue.model_dump(),
            file_path=outcome.file_path,
            file_name=_file_name(outcome.file_path),
        )
        for outcome in successes
        for issue in outcome.result.issues
    ]

    return ProjectReport(
        project_name=project_name,
        total_files=len(outcomes),
        average_score=average,
        outcomes=list(outcomes),
        all_issues=all_issues,
        criticals=[i for i in all_issues if i.severity == Severity.CRITICAL],
        warnings=[i for i in all_issues if i.severity == Severity.WARNING],
        suggestions=[i for i in all_issues if i.severity == Severity.SUGGESTION],
        security_issues=[i for i in all_issues if is_security_issue(i.category, keywords)],
        worst_files=sorted(successes, key=lambda o: o.result.score)[:WORST_FILES_LIMIT],
        failed_files=len(outcomes) - len(successes),
        cancelled=cancelled,
    )


async def _review_file(
    reviewer: CodeReviewer,
    file: ProjectFile,
    standards: List[str],
    custom_rules: str,
    options: ReviewOptions,
    cancel_event: Optional[asyncio.Event],
) -> FileReviewOutcome:
    language = file.language or detect_language(file.path)
    if not language:
        return FileReviewOutcome(
            file_path=file.path, error=f"Could not detect language for {file.path}"
        )

    request = ReviewRequest(
        code=file.code,
        language=language,
        standards=standards,
        custom_rules=custom_rules,
    )
    try:
        result = await reviewer.review(request, options, cancel_event=cancel_event)
    except ReviewCancelledError:
        return FileReviewOutcome(file_path=file.path, language=language, error=CANCELLED_MESSAGE)
    except CodeScanError as e:
        logger.warning("Review failed for %s: %s", file.path, e)
        return FileReviewOutcome(file_path=file.path, language=language, error=str(e))
    except Exception as e:
        logger.exception("Unexpected error reviewing %s", file.path)
        return FileReviewOutcome(
            file_path=file.path, language=language, error=str(e) or type(e).__name__
        )
    return FileReviewOutcome(file_path=file.path, language=language, result=result)


async def review_project(
    files: Sequence[ProjectFile],
    *,
    standards: Sequence[str],
    custom_rules: str = "",
    options: Optional[ReviewOptions] = None,
    project_name: str = "project",
    concurrency: Optional[int] = None,
    reviewer: Optional[CodeReviewer] = None,
    on_status: Optional[StatusCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    settings: Optional[Settings] = None,
) -> ProjectReport:
    """
    Review every file and return the aggregated report.

    Always returns a report with one outcome per input file, in input order.
    Only the caller's own cancellation of this coroutine propagates.
    """
    settings = settings or (reviewer.settings if reviewer else get_settings())
    options = options or ReviewOptions()
    limit = max(1, concurrency or settings.project.concurrency)
    total = len(files)
    standards = list(standards)
    outcomes: List[Optional[FileReviewOutcome]] = [None] * total
    semaphore = asyncio.Semaphore(limit)
    owns_reviewer = reviewer is None
    reviewer = reviewer or CodeReviewer(settings)

    logger.info("Project %s: reviewing %d files (concurrency=%d)", project_name, total, limit)

    async def _worker(index: int, file: ProjectFile) -> None:
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                outcomes[index] = FileReviewOutcome(
                    file_path=file.path,
                    language=file.language or detect_language(file.path) or "",
                    error=CANCELLED_MESSAGE,
                )
                return
            notify_status(on_status, f"Reviewing {index + 1}/{total}: {_file_name(file.path)}...")
            outcomes[index] = await _review_file(
                reviewer, file, standards, custom_rules, options, cancel_event
            )

    try:
        await asyncio.gather(*(_worker(i, f) for i, f in enumerate(files)))
    finally:
        if owns_reviewer:
            await reviewer.close()

    cancelled = cancel_event is not None and cancel_event.is_set()
    report = build_project_report(
        project_name,
        [o for o in outcomes if o is not None],
        security_keywords=settings.project.security_keywords,
        cancelled=cancelled,
    )
    logger.info(
        "Project %s: %d files, %d failed, average score %.1f",
        project_name, report.total_files, report.failed_files, report.average_score,
    )
    notify_status(on_status, f"Reviewed {total} files")
    return report
