"""
Response decoder: raw model text to a validated ReviewResult.

Models wrap their JSON in prose and code fences, leave trailing commas,
single-quote keys, add comments, or stop mid-object. Decoding is tiered, each
tier tried only if the previous one failed:

    1. strict    : braces-balanced extraction of each object in turn, json.loads
    2. sanitized : same candidate after the REPAIR_PASSES, json.loads
    3. salvaged  : regex for score/summary over the first `{` to last `}`
                   span, best-effort recovery of the strengths/issues arrays
    4. fallback  : neutral score=50 result with a diagnostic summary

decode_review_response never raises. Every result passes through the same
validation (score clamped to 0..100, summary defaulted, lists coerced).
"""
import json
import logging
import math
import re
from itertools import islice
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from codescan.schemas import DecodeTier, Issue, ReviewResult, Severity

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 50
DEFAULT_SUMMARY = "Review complete."
PARTIAL_SUMMARY = "Partial result."
NO_JSON_SUMMARY = "Model did not return JSON. Try again."
UNPARSEABLE_SUMMARY = "Could not parse model response. Try again."

REVIEW_KEYS = ("score", "summary", "issues", "strengths")
MAX_CANDIDATES = 8


# ---------------------------------------------------------------------------
# Candidate extraction
# ---------------------------------------------------------------------------


def _scan_balanced(text: str, start: int, open_ch: str, close_ch: str) -> Optional[int]:
    """
    Index of the bracket closing text[start], skipping double-quoted strings.
    None if the text ends first (truncated output).
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
    return None


def iter_json_candidates(text: str) -> Iterator[str]:
    """
    Successive `{...}` objects in the text, left to right.

    Each search resumes after the previous object, so objects nested inside a
    candidate are never yielded on their own. An object that never closes is
    the last candidate and runs to the last `}` or to the end of the text.
    """
    start = text.find("{")
    while start != -1:
        end = _scan_balanced(text, start, "{", "}")
        if end is None:
            last = text.rfind("}")
            yield text[start:last + 1] if last > start else text[start:]
            return
        yield text[start:end + 1]
        start = text.find("{", end + 1)


def extract_json_candidate(text: str) -> Optional[str]:
    """
    Substring from the first `{` to its matching `}`.

    Braces inside strings (e.g. improved_code snippets) do not count. When the
    object never closes, falls back to the last `}` in the text, or to the rest
    of the text so the salvage tier still has something to work on.
    """
    return next(iter_json_candidates(text), None)


def _salvage_span(text: str) -> Optional[str]:
    """First `{` to last `}`, or to the end when the last `{` is still open."""
    start = text.find("{")
    if start == -1:
        return None
    last = text.rfind("}")
    if last > text.rfind("{"):
        return text[start:last + 1]
    return text[start:]


# ---------------------------------------------------------------------------
# Repair passes: each a pure text -> text function, applied left to right
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*")
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def _string_end(text: str, start: int) -> int:
    """Index just past the string literal opened by the quote at text[start]."""
    quote = text[start]
    i, n = start + 1, len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return n


def _outside_strings(text: str, repair: Callable[[str], str]) -> str:
    """Apply `repair` to the stretches between double-quoted string literals."""
    out: List[str] = []
    i, n = 0, len(text)
    while i < n:
        quote = text.find('"', i)
        if quote == -1:
            out.append(repair(text[i:]))
            break
        out.append(repair(text[i:quote]))
        end = _string_end(text, quote)
        out.append(text[quote:end])
        i = end
    return "".join(out)


def strip_code_fences(text: str) -> str:
    """Drop ``` / ```json fence markers (string contents are kept)."""
    return _outside_strings(text, lambda chunk: _FENCE_RE.sub("", chunk))


def strip_comments(text: str) -> str:
    """Drop // line comments and /* */ block comments outside string literals."""
    out: List[str] = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = n if newline == -1 else newline
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = n if close == -1 else close + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """`[1, 2,]` -> `[1, 2]`, `{"a": 1,}` -> `{"a": 1}`, outside string literals."""
    return _outside_strings(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))


def _double_quoted(literal: str) -> str:
    """Rewrite a single-quoted literal as a JSON string literal."""
    body = literal[1:-1] if len(literal) > 1 and literal.endswith("'") else literal[1:]
    out: List[str] = []
    i, n = 0, len(body)
    while i < n:
        ch = body[i]
        if ch == "\\" and i + 1 < n:
            nxt = body[i + 1]
            out.append("'" if nxt == "'" else ch + nxt)
            i += 2
            continue
        out.append('\\"' if ch == '"' else ch)
        i += 1
    return '"' + "".join(out) + '"'


def normalize_quotes(text: str) -> str:
    """
    Single-quoted keys, values and array items become double-quoted.

    Apostrophes inside double-quoted strings are content and stay untouched.
    """
    out: List[str] = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            end = _string_end(text, i)
            out.append(text[i:end])
            i = end
        elif ch == "'":
            end = _string_end(text, i)
            out.append(_double_quoted(text[i:end]))
            i = end
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def strip_control_chars(text: str) -> str:
    """Remove non-printable control characters (tab, newline, CR are kept)."""
    return _CONTROL_RE.sub("", text)


REPAIR_PASSES: Tuple[Callable[[str], str], ...] = (
    strip_code_fences,
    strip_comments,
    remove_trailing_commas,
    normalize_quotes,
    strip_control_chars,
)


def sanitize_json(text: str) -> str:
    """Apply every repair pass in order."""
    for repair in REPAIR_PASSES:
        text = repair(text)
    return text.strip()


# ---------------------------------------------------------------------------
# Validation / coercion
# ---------------------------------------------------------------------------

_SEVERITY_PREFIXES = (
    (("crit", "high", "error", "major", "block"), Severity.CRITICAL),
    (("warn", "medium", "moderate"), Severity.WARNING),
)


def _coerce_score(value: Any) -> int:
    """Clamp to 0..100. Missing, boolean, non-numeric or non-finite -> DEFAULT_SCORE."""
    if isinstance(value, bool):
        return DEFAULT_SCORE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_SCORE
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return DEFAULT_SCORE
    return max(0, min(100, int(round(value))))


def _coerce_severity(value: Any) -> Severity:
    label = str(value or "").strip().lower()
    for member in Severity:
        if label == member.value.lower():
            return member
    for prefixes, severity in _SEVERITY_PREFIXES:
        if label.startswith(prefixes):
            return severity
    return Severity.SUGGESTION


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _coerce_issue(raw: Any, position: int) -> Optional[Issue]:
    if not isinstance(raw, dict):
        return None
    raw_id = raw.get("id")
    issue_id = raw_id if isinstance(raw_id, int) and not isinstance(raw_id, bool) else position
    if isinstance(raw_id, str) and raw_id.strip().isdigit():
        issue_id = int(raw_id.strip())
    return Issue(
        id=issue_id,
        severity=_coerce_severity(raw.get("severity")),
        category=_text(raw.get("category")),
        line_reference=_text(raw.get("line_reference", raw.get("lineReference"))),
        title=_text(raw.get("title")),
        problem=_text(raw.get("problem")),
        improved_code=_text(raw.get("improved_code", raw.get("improvedCode"))),
        explanation=_text(raw.get("explanation")),
    )


def _coerce_issues(value: Any) -> List[Issue]:
    if not isinstance(value, list):
        return []
    issues = []
    for position, raw in enumerate(value, start=1):
        issue = _coerce_issue(raw, position)
        if issue is not None:
            issues.append(issue)
    return issues


def _coerce_strengths(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [_text(item) for item in value if item is not None]


def validate_review(parsed: Dict[str, Any], tier: DecodeTier = "strict") -> ReviewResult:
    """Turn a parsed JSON object into a schema-valid ReviewResult."""
    summary = parsed.get("summary")
    return ReviewResult(
        score=_coerce_score(parsed.get("score")),
        summary=summary if isinstance(summary, str) else DEFAULT_SUMMARY,
        issues=_coerce_issues(parsed.get("issues")),
        strengths=_coerce_strengths(parsed.get("strengths")),
        decode_tier=tier,
    )


def fallback_result(message: str = UNPARSEABLE_SUMMARY) -> ReviewResult:
    return ReviewResult(score=DEFAULT_SCORE, summary=message, decode_tier="fallback")


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def _parse_object(candidate: str, *, strict: bool) -> Dict[str, Any]:
    parsed = json.loads(candidate, strict=strict)
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


_SCORE_RE = re.compile(r"""(?<!\w)["']?score["']?\s*:\s*["']?(-?\d+(?:\.\d+)?)""")
_SUMMARY_RE = re.compile(r'''(?<!\w)["']?summary["']?\s*:\s*(?:"((?:[^"\\]|\\.)*)"|'([^']*)')''')


def _array_start(text: str, key: str) -> Optional[int]:
    match = re.search(r"""(?<!\w)["']?%s["']?\s*:\s*\[""" % re.escape(key), text)
    return match.end() - 1 if match else None


def _load_array(fragment: str) -> Optional[list]:
    for attempt in (fragment, sanitize_json(fragment)):
        try:
            value = json.loads(attempt, strict=False)
        except ValueError:
            continue
        if isinstance(value, list):
            return value
    return None


def _salvage_array(text: str, key: str) -> list:
    """
    Recover a `"key": [...]` array from broken text.

    A complete array is parsed as a whole. If the array is cut off or does not
    parse, every complete `{...}` element inside it is parsed on its own.
    """
    start = _array_start(text, key)
    if start is None:
        return []
    end = _scan_balanced(text, start, "[", "]")
    if end is not None:
        whole = _load_array(text[start:end + 1])
        if whole is not None:
            return whole
    region = text[start + 1:end] if end is not None else text[start + 1:]
    items = []
    pos = region.find("{")
    while pos != -1:
        close = _scan_balanced(region, pos, "{", "}")
        if close is None:
            break
        loaded = _load_array("[" + region[pos:close + 1] + "]")
        if loaded:
            items.extend(loaded)
        pos = region.find("{", close + 1)
    return items


def _salvage(candidate: str) -> Optional[ReviewResult]:
    score_match = _SCORE_RE.search(candidate)
    if not score_match:
        return None
    summary = PARTIAL_SUMMARY
    summary_match = _SUMMARY_RE.search(candidate)
    if summary_match:
        if summary_match.group(1) is not None:
            try:
                summary = json.loads('"' + summary_match.group(1) + '"', strict=False)
            except ValueError:
                summary = summary_match.group(1)
        else:
            summary = summary_match.group(2)
    return validate_review(
        {
            "score": score_match.group(1),
            "summary": summary or PARTIAL_SUMMARY,
            "issues": _salvage_array(candidate, "issues"),
            "strengths": _salvage_array(candidate, "strengths"),
        },
        tier="salvaged",
    )


def decode_review_response(text: Any) -> ReviewResult:
    """
    Decode raw model text into a ReviewResult. Never raises.

    The returned result carries decode_tier so callers can tell a clean parse
    from a salvaged or fallback one.
    """
    if not isinstance(text, str):
        text = "" if text is None else str(text)
    try:
        return _decode(text)
    except Exception:
        logger.exception("Unexpected error decoding model response")
        return fallback_result()


def _parse_candidate(candidate: str) -> Tuple[Optional[Dict[str, Any]], DecodeTier]:
    try:
        return _parse_object(candidate, strict=True), "strict"
    except ValueError:
        pass
    try:
        return _parse_object(sanitize_json(candidate), strict=False), "sanitized"
    except ValueError:
        return None, "fallback"


def _decode(text: str) -> ReviewResult:
    span = _salvage_span(text)
    if span is None:
        logger.warning("Model response contains no JSON object (%d chars)", len(text))
        return fallback_result(NO_JSON_SUMMARY)

    # Prose before the answer can hold braces of its own (`f() { ... }`), so
    # later objects get their turn when an earlier one is not a review.
    other: Optional[Tuple[Dict[str, Any], DecodeTier]] = None
    for candidate in islice(iter_json_candidates(text), MAX_CANDIDATES):
        parsed, tier = _parse_candidate(candidate)
        if parsed is None:
            continue
        if any(key in parsed for key in REVIEW_KEYS):
            if tier == "sanitized":
                logger.info("Model response decoded after sanitizing")
            return validate_review(parsed, tier=tier)
        if other is None:
            other = (parsed, tier)

    salvaged = _salvage(span)
    if salvaged is not None:
        logger.warning("Model response only partially decoded (score=%d)", salvaged.score)
        return salvaged

    if other is not None:
        return validate_review(other[0], tier=other[1])

    logger.warning("Could not decode model response (%d chars)", len(text))
    return fallback_result(UNPARSEABLE_SUMMARY)
