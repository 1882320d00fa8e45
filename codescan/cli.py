"""
CLI runner.

Usage:
  python -m codescan.cli review myfile.py
  python -m codescan.cli review src/auth.js --standards solid,owasp --mode cloud
  python -m codescan.cli review . --ext .py,.js --fail-under 70
  python -m codescan.cli standards
  python -m codescan.cli languages
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from codescan.config_loader import get_settings
from codescan.errors import CodeScanError
from codescan.files import collect_paths, load_project_files
from codescan.languages import LANGUAGE_LABELS, detect_language
from codescan.project import review_project
from codescan.reviewer import review_code
from codescan.schemas import ProjectReport, ReviewOptions, ReviewRequest, ReviewResult, Severity
from codescan.standards import list_standards, resolve_standards

DEFAULT_STANDARDS = "solid,null_safety,error_handling,clean_code"


def _status(message: str) -> None:
    print(f"… {message}", file=sys.stderr)


def _print_result(result: ReviewResult, file_path: str) -> None:
    print(f"\n{file_path}")
    print("-" * 50)
    print(f"Score: {result.score}/100  Engine: {result.engine.value if result.engine else '?'}")
    print(result.summary)

    if result.strengths:
        print("\nStrengths")
        for s in result.strengths:
            print(f"  + {s}")

    if not result.issues:
        print("\nNo issues found!")
        return

    counts = {sev: sum(1 for i in result.issues if i.severity == sev) for sev in Severity}
    print(
        f"\nIssues: {counts[Severity.CRITICAL]} Critical  "
        f"{counts[Severity.WARNING]} Warning  {counts[Severity.SUGGESTION]} Suggestion\n"
    )
    for issue in result.issues:
        print(f"  [{issue.severity.value}] {issue.title} {issue.line_reference}".rstrip())
        if issue.problem:
            print(f"  {issue.problem}")
        if issue.improved_code:
            print("  Fix:")
            for line in issue.improved_code.splitlines():
                print(f"    {line}")
        print()


def _print_report(report: ProjectReport) -> None:
    print(f"\n{report.project_name}: {report.total_files} files, average {report.average_score}/100")
    print(
        f"Issues: {len(report.criticals)} Critical  {len(report.warnings)} Warning  "
        f"{len(report.suggestions)} Suggestion  ({len(report.security_issues)} security)"
    )
    if report.worst_files:
        print("\nLowest scores")
        for outcome in report.worst_files:
            print(f"  {outcome.score:>3}  {outcome.file_path}")
    for outcome in report.outcomes:
        if outcome.result is not None:
            _print_result(outcome.result, outcome.file_path)
        else:
            print(f"\n{outcome.file_path}\n  Failed: {outcome.error}")


def _parse_standards(raw: str) -> List[str]:
    standards = [s.strip() for s in raw.split(",") if s.strip()]
    _, unknown = resolve_standards(standards)
    if unknown:
        print(f"Unknown standards: {', '.join(unknown)}", file=sys.stderr)
        print(f"Available: {', '.join(s.id for s in list_standards())}", file=sys.stderr)
    return standards


def _run_review(args: argparse.Namespace) -> int:
    target = Path(args.path)
    settings = get_settings()
    standards = _parse_standards(args.standards)
    options = ReviewOptions(mode=args.mode, local_model=args.model, timeout=args.timeout)
    extensions = args.ext.split(",") if args.ext else None

    try:
        paths = collect_paths(target, extensions=extensions, config=settings.project)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not paths:
        print("No files found to review.", file=sys.stderr)
        return 1

    if target.is_file():
        language = args.language or detect_language(target.name)
        if not language:
            print(f"Could not detect language for {target}; pass --language", file=sys.stderr)
            return 1
        request = ReviewRequest(
            code=target.read_text(encoding="utf-8", errors="replace"),
            language=language,
            standards=standards,
        )
        try:
            result = asyncio.run(review_code(request, options, on_status=_status, settings=settings))
        except CodeScanError as e:
            print(f"Failed: {e}", file=sys.stderr)
            return 1
        if args.json:
            print(result.model_dump_json(indent=2))
        else:
            _print_result(result, str(target))
        if args.fail_under is not None and result.score < args.fail_under:
            return 1
        return 0

    files = load_project_files(paths, base=target)
    if args.language:
        for f in files:
            f.language = args.language
    report = asyncio.run(review_project(
        files,
        standards=standards,
        options=options,
        project_name=target.resolve().name,
        concurrency=args.concurrency,
        on_status=_status,
        settings=settings,
    ))
    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        _print_report(report)

    if report.failed_files:
        return 1
    if args.fail_under is not None and any(
        o.score is not None and o.score < args.fail_under for o in report.outcomes
    ):
        return 1
    return 0


def _run_standards(args: argparse.Namespace) -> int:
    print("Available Standards:\n")
    for s in list_standards():
        print(f"  {s.icon} {s.id:<20} {s.label}")
        print(f"     {s.description}\n")
    return 0


def _run_languages(args: argparse.Namespace) -> int:
    print("Supported Languages:\n")
    for label in LANGUAGE_LABELS:
        print(f"  - {label}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codescan", description="AI-powered code review")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    review = sub.add_parser("review", help="Review a file or directory")
    review.add_argument("path")
    review.add_argument("-l", "--language", help="Language (auto-detected if omitted)")
    review.add_argument("-s", "--standards", default=DEFAULT_STANDARDS, help="Comma-separated standard IDs")
    review.add_argument("-m", "--mode", choices=["auto", "cloud", "local"], default="auto")
    review.add_argument("--model", help="Local Ollama model (default from config)")
    review.add_argument("--ext", help="File extensions to scan in a directory (e.g. .py,.js)")
    review.add_argument("--json", action="store_true", help="Output raw JSON")
    review.add_argument("--fail-under", type=int, help="Exit 1 if any score is below this value")
    review.add_argument("--concurrency", type=int, help="Files reviewed in parallel")
    review.add_argument("--timeout", type=float, help="Seconds per inference call")
    review.set_defaults(func=_run_review)

    standards = sub.add_parser("standards", help="List all available review standards")
    standards.set_defaults(func=_run_standards)

    languages = sub.add_parser("languages", help="List all supported languages")
    languages.set_defaults(func=_run_languages)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
