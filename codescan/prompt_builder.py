"""
Prompt builders for the two engines.

build_prompt is the verbose variant sent to the cloud engine. build_local_prompt
is the compact variant for small local models: one-line schema example and an
explicit no-markdown instruction. Both are pure functions of the request.
"""
from codescan.schemas import ReviewRequest
from codescan.standards import build_standards_section, resolve_standards

_OUTPUT_SCHEMA = """{
  "score": <integer 0-100>,
  "summary": "<2-3 sentence overall assessment>",
  "issues": [
    {
      "id": 1,
      "severity": "<Critical|Warning|Suggestion>",
      "category": "<standard name>",
      "line_reference": "<e.g. Line 5>",
      "title": "<short issue title>",
      "problem": "<what is wrong and why it matters>",
      "improved_code": "<corrected code snippet>",
      "explanation": "<why the fix is better>"
    }
  ],
  "strengths": ["<something done well>"]
}"""

_LOCAL_EXAMPLE = (
    '{"score":60,"summary":"Code has security and null safety issues.",'
    '"issues":[{"id":1,"severity":"Critical","category":"Security","line_reference":"Line 2",'
    '"title":"SQL Injection Risk","problem":"User input directly used in SQL string.",'
    '"improved_code":"db.query(\'SELECT * FROM users WHERE id = ?\', [userId])",'
    '"explanation":"Parameterized queries prevent SQL injection."}],'
    '"strengths":["Clear variable names"]}'
)

_SEVERITY_GUIDE = (
    "Severity: Critical=security/crashes/null-errors, "
    "Warning=bad practices/performance, Suggestion=style/naming."
)


def build_prompt(request: ReviewRequest) -> str:
    """Verbose prompt: role preamble, standards fragments, custom rules, JSON schema, code."""
    lines = [
        "You are a world-class senior software engineer and code reviewer.",
        f"Review the following {request.language} code with deep expertise.",
        "",
        build_standards_section(request.standards),
        "",
    ]
    custom_rules = (request.custom_rules or "").strip()
    if custom_rules:
        lines.extend(["### Custom Team Rules", custom_rules, ""])
    lines.extend([
        "Return ONLY a valid JSON object. No markdown, no explanation, no text outside the JSON.",
        "",
        _OUTPUT_SCHEMA,
        "",
        _SEVERITY_GUIDE,
        "",
        f"Code ({request.language}):",
        "```",
        request.code,
        "```",
    ])
    return "\n".join(lines)


def build_local_prompt(request: ReviewRequest) -> str:
    """Compact prompt for local models, with a concrete one-line worked example."""
    resolved, _ = resolve_standards(request.standards)
    focus = ", ".join(s.label for s in resolved)
    lines = [f"Review this {request.language} code for: {focus}."]
    custom_rules = (request.custom_rules or "").strip()
    if custom_rules:
        lines.append(f"Also apply these team rules: {custom_rules}")
    lines.extend([
        "",
        "CODE:",
        request.code,
        "",
        "Respond with ONLY a JSON object. No explanation. No markdown. "
        "No text before or after. Double quotes only.",
        "",
        "Example:",
        _LOCAL_EXAMPLE,
        "",
        "Your JSON:",
    ])
    return "\n".join(lines)
