"""
Standards catalog: every reviewable rule-set with its prompt fragment.

Built once at import time and never mutated. Prompt assembly is a fold over the
selected subset; unknown ids are reported back to the caller, not raised.
"""
import logging
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from codescan.schemas import Standard

logger = logging.getLogger(__name__)

CATALOG_VERSION = "2024.1"

STANDARDS: Tuple[Standard, ...] = (
    Standard(
        id="solid",
        label="SOLID Principles",
        icon="⚙️",
        description="Single Responsibility, Open/Closed, Liskov, Interface Segregation, Dependency Inversion",
        prompt=(
            "Review for SOLID Principles:\n"
            "- Single Responsibility: Each class/function should have one reason to change\n"
            "- Open/Closed: Open for extension, closed for modification\n"
            "- Liskov Substitution: Subtypes must be substitutable for base types\n"
            "- Interface Segregation: Don't force clients to depend on unused interfaces\n"
            "- Dependency Inversion: Depend on abstractions, not concretions"
        ),
    ),
    Standard(
        id="dry",
        label="DRY / KISS / YAGNI",
        icon="🔁",
        description="Don't Repeat Yourself, Keep It Simple, You Aren't Gonna Need It",
        prompt=(
            "Review for DRY/KISS/YAGNI:\n"
            "- DRY: Identify duplicated logic that should be extracted\n"
            "- KISS: Flag overly complex solutions that can be simplified\n"
            "- YAGNI: Identify code written for future requirements that don't exist yet\n"
            "- Look for repeated string literals, magic numbers, duplicated conditionals"
        ),
    ),
    Standard(
        id="clean_code",
        label="Clean Code",
        icon="✨",
        description="Robert C. Martin's Clean Code principles",
        prompt=(
            "Review for Clean Code principles:\n"
            "- Meaningful names: variables, functions, classes should reveal intent\n"
            "- Functions should be small, do one thing, and have no side effects\n"
            "- Comments should explain WHY, not WHAT; code should be self-documenting\n"
            "- No deeply nested code: flatten with early returns or extraction\n"
            "- Avoid output arguments, flag arguments and selector arguments"
        ),
    ),
    Standard(
        id="owasp",
        label="OWASP Security",
        icon="🔐",
        description="OWASP Top 10 security vulnerabilities",
        prompt=(
            "Review for OWASP Top 10 security vulnerabilities:\n"
            "- Injection attacks: SQL injection, command injection, XSS\n"
            "- Hardcoded credentials, API keys, passwords, secrets\n"
            "- Insecure direct object references\n"
            "- Security misconfiguration\n"
            "- Sensitive data exposure (logging sensitive info, unencrypted storage)\n"
            "- Broken access control\n"
            "- Insecure deserialization\n"
            "- Using components with known vulnerabilities"
        ),
    ),
    Standard(
        id="null_safety",
        label="Null Safety & Edge Cases",
        icon="🛡️",
        description="Null/undefined checks, boundary conditions, edge case handling",
        prompt=(
            "Review for Null Safety and Edge Cases:\n"
            "- Missing null/undefined/None checks before accessing properties\n"
            "- Missing array bounds checks\n"
            "- Missing type checks before casting\n"
            "- Unhandled empty string or empty array cases\n"
            "- Integer overflow/underflow risks\n"
            "- Division by zero possibilities\n"
            "- Off-by-one errors in loops\n"
            "- Missing fallback/default values"
        ),
    ),
    Standard(
        id="error_handling",
        label="Error Handling",
        icon="⚠️",
        description="Exception handling, error propagation, recovery strategies",
        prompt=(
            "Review for Error Handling:\n"
            "- Bare try/catch blocks that swallow errors silently\n"
            "- Missing error handling for async operations\n"
            "- Overly broad exception catching (catching Exception/Error base classes)\n"
            "- No meaningful error messages or context\n"
            "- Missing finally blocks where cleanup is needed\n"
            "- Errors that crash the app instead of graceful degradation\n"
            "- Missing validation of external inputs (user input, API responses, file contents)"
        ),
    ),
    Standard(
        id="performance",
        label="Performance Optimization",
        icon="⚡",
        description="Algorithmic complexity, memory usage, unnecessary computations",
        prompt=(
            "Review for Performance:\n"
            "- Inefficient algorithms: O(n^2) where O(n) or O(n log n) is possible\n"
            "- Unnecessary loops, redundant iterations\n"
            "- N+1 query problems (database queries inside loops)\n"
            "- Missing memoization/caching for repeated expensive calculations\n"
            "- Creating objects or allocating memory inside tight loops\n"
            "- Unnecessary string concatenation in loops (use StringBuilder/join)\n"
            "- Large data structures held in memory unnecessarily\n"
            "- Missing lazy loading or pagination"
        ),
    ),
    Standard(
        id="design_patterns",
        label="Design Patterns",
        icon="🧩",
        description="GoF patterns: suggest where patterns would improve the design",
        prompt=(
            "Review for Design Pattern opportunities:\n"
            "- Suggest where Factory, Builder, or Singleton patterns would help\n"
            "- Identify where Strategy pattern could replace complex conditionals\n"
            "- Flag where Observer/Event pattern would decouple components\n"
            "- Identify where Decorator pattern avoids deep inheritance\n"
            "- Flag God Objects or Anemic Domain Models\n"
            "- Identify feature envy (methods that use another class's data more than their own)\n"
            "- Suggest where Command pattern could improve undo/redo or queuing"
        ),
    ),
    Standard(
        id="naming",
        label="Naming Conventions",
        icon="🏷️",
        description="Variable, function, class naming clarity and consistency",
        prompt=(
            "Review for Naming Conventions:\n"
            "- Single-letter variables outside of accepted conventions (i, j, k for loops)\n"
            "- Abbreviations that reduce readability (usr, cnt, tmp, val, obj)\n"
            "- Boolean variables not starting with is/has/can/should\n"
            "- Functions not starting with a verb (getUser, calculateTotal, isValid)\n"
            "- Inconsistent casing (mixing camelCase and snake_case in the same file)\n"
            "- Misleading names (a function named \"getUser\" that also modifies the user)\n"
            "- Class names that are not nouns"
        ),
    ),
    Standard(
        id="complexity",
        label="Cyclomatic Complexity",
        icon="🔀",
        description="Code complexity, nesting depth, cognitive load",
        prompt=(
            "Review for Cyclomatic Complexity:\n"
            "- Functions with too many if/else/switch branches (complexity > 10 is a red flag)\n"
            "- Deeply nested code blocks (more than 3 levels deep)\n"
            "- Long functions that should be broken up (more than 20-30 lines is a signal)\n"
            "- Long parameter lists (more than 3-4 parameters suggests need for a config object)\n"
            "- Chained conditionals that can be simplified with lookup tables or polymorphism\n"
            "- Complex boolean expressions that can be extracted into named predicates"
        ),
    ),
    Standard(
        id="testing",
        label="Testability",
        icon="🧪",
        description="Code structure for unit testing, mocking, dependency injection",
        prompt=(
            "Review for Testability:\n"
            "- Hard-coded dependencies (direct instantiation) instead of injection\n"
            "- Functions with side effects mixed with business logic\n"
            "- Static method abuse that makes mocking hard\n"
            "- Functions that do too many things to test in isolation\n"
            "- Global state mutations that make tests order-dependent\n"
            "- Missing separation between I/O and pure logic\n"
            "- Date/time, randomness, or network calls that aren't abstracted"
        ),
    ),
    Standard(
        id="docs",
        label="Documentation & Comments",
        icon="📝",
        description="Code comments, JSDoc/docstrings, README quality",
        prompt=(
            "Review for Documentation:\n"
            "- Public functions/methods missing docstrings or JSDoc comments\n"
            "- Complex algorithms with no explanation of the approach\n"
            "- TODO/FIXME/HACK comments left in production code\n"
            "- Commented-out code that should be deleted\n"
            "- Missing parameter and return type documentation\n"
            "- Misleading or outdated comments that contradict the code\n"
            "- Missing error documentation (what exceptions can be thrown)"
        ),
    ),
)

_BY_ID: Mapping[str, Standard] = MappingProxyType({s.id: s for s in STANDARDS})


def list_standards() -> List[Standard]:
    """Return all standards in catalog order."""
    return list(STANDARDS)


def get_standard(standard_id: str) -> Optional[Standard]:
    """Return the standard for an id, or None if unknown."""
    return _BY_ID.get(standard_id)


def resolve_standards(standard_ids: Iterable[str]) -> Tuple[List[Standard], List[str]]:
    """
    Resolve ids in order. Returns (resolved, unknown_ids).

    Duplicate ids resolve once. Unknown ids are logged and returned so callers
    can surface them, but never raise.
    """
    resolved: List[Standard] = []
    unknown: List[str] = []
    seen = set()
    for sid in standard_ids:
        if sid in seen:
            continue
        seen.add(sid)
        std = _BY_ID.get(sid)
        if std is None:
            unknown.append(sid)
        else:
            resolved.append(std)
    if unknown:
        logger.warning("Unknown standards ignored: %s", ", ".join(unknown))
    return resolved, unknown


def build_standards_section(standard_ids: Iterable[str]) -> str:
    """Prompt section with one `### label` block per resolved standard."""
    resolved, _ = resolve_standards(standard_ids)
    return "\n\n".join(f"### {s.label}\n{s.prompt}" for s in resolved)
