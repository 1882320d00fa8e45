"""
Supported languages and filename-based detection.

Used by the CLI --language default, project scans and the /api/languages endpoint.
"""
from pathlib import PurePath
from typing import Dict, List, NamedTuple, Optional, Tuple


class Language(NamedTuple):
    id: str
    label: str
    group: str
    patterns: Tuple[str, ...]  # ".ext" suffixes, or exact basenames such as "Dockerfile"


LANGUAGES: Tuple[Language, ...] = (
    # Web / Frontend
    Language("javascript", "JavaScript", "Web", (".js", ".mjs", ".cjs")),
    Language("typescript", "TypeScript", "Web", (".ts", ".tsx")),
    Language("html_css", "HTML / CSS", "Web", (".html", ".css", ".scss", ".sass")),
    Language("jsx", "React (JSX)", "Web", (".jsx",)),
    Language("vue", "Vue", "Web", (".vue",)),
    Language("svelte", "Svelte", "Web", (".svelte",)),
    # Backend
    Language("python", "Python", "Backend", (".py",)),
    Language("java", "Java", "Backend", (".java",)),
    Language("csharp", "C#", "Backend", (".cs",)),
    Language("go", "Go", "Backend", (".go",)),
    Language("rust", "Rust", "Backend", (".rs",)),
    Language("ruby", "Ruby", "Backend", (".rb",)),
    Language("php", "PHP", "Backend", (".php",)),
    Language("kotlin", "Kotlin", "Backend", (".kt", ".kts")),
    Language("scala", "Scala", "Backend", (".scala",)),
    Language("elixir", "Elixir", "Backend", (".ex", ".exs")),
    Language("haskell", "Haskell", "Backend", (".hs",)),
    Language("clojure", "Clojure", "Backend", (".clj", ".cljs")),
    Language("erlang", "Erlang", "Backend", (".erl",)),
    Language("fsharp", "F#", "Backend", (".fs", ".fsi")),
    # Systems
    Language("c", "C", "Systems", (".c", ".h")),
    Language("cpp", "C++", "Systems", (".cpp", ".cc", ".cxx", ".hpp")),
    Language("swift", "Swift", "Systems", (".swift",)),
    Language("dart", "Dart", "Mobile", (".dart",)),
    Language("assembly", "Assembly", "Systems", (".asm", ".s")),
    Language("zig", "Zig", "Systems", (".zig",)),
    # Data / ML
    Language("r", "R", "Data/ML", (".r",)),
    Language("matlab", "MATLAB", "Data/ML", (".m",)),
    Language("julia", "Julia", "Data/ML", (".jl",)),
    # Data / Query
    Language("sql", "SQL", "Data", (".sql",)),
    Language("graphql", "GraphQL", "Data", (".graphql", ".gql")),
    # Scripting / DevOps
    Language("bash", "Shell / Bash", "DevOps", (".sh", ".bash")),
    Language("powershell", "PowerShell", "DevOps", (".ps1", ".psm1")),
    Language("lua", "Lua", "Scripting", (".lua",)),
    Language("perl", "Perl", "Scripting", (".pl", ".pm")),
    Language("groovy", "Groovy", "DevOps", (".groovy", ".gradle")),
    # Config / Infra
    Language("yaml", "YAML", "Config", (".yaml", ".yml")),
    Language("json", "JSON", "Config", (".json",)),
    Language("toml", "TOML", "Config", (".toml",)),
    Language("dockerfile", "Dockerfile", "DevOps", ("Dockerfile",)),
    Language("terraform", "Terraform", "DevOps", (".tf",)),
    # Web3
    Language("solidity", "Solidity", "Web3", (".sol",)),
    Language("vyper", "Vyper", "Web3", (".vy",)),
    Language("move", "Move", "Web3", (".move",)),
)

LANGUAGE_LABELS: List[str] = [lang.label for lang in LANGUAGES]

_BY_SUFFIX: Dict[str, Language] = {}
_BY_BASENAME: Dict[str, Language] = {}
for _lang in LANGUAGES:
    for _pattern in _lang.patterns:
        if _pattern.startswith("."):
            _BY_SUFFIX.setdefault(_pattern, _lang)
        else:
            _BY_BASENAME.setdefault(_pattern, _lang)


def find_language(filename: str) -> Optional[Language]:
    """Return the Language for a filename or path, or None if unknown."""
    if not filename:
        return None
    path = PurePath(filename.replace("\\", "/"))
    by_name = _BY_BASENAME.get(path.name)
    if by_name is not None:
        return by_name
    return _BY_SUFFIX.get(path.suffix.lower())


def detect_language(filename: str) -> Optional[str]:
    """Canonical language label for a filename (e.g. "Python"), or None."""
    lang = find_language(filename)
    return lang.label if lang else None


def supported_extensions() -> List[str]:
    """All known suffixes, for project file filtering."""
    return sorted(_BY_SUFFIX)


def language_groups() -> Dict[str, List[Language]]:
    """Languages grouped for display, preserving catalog order."""
    groups: Dict[str, List[Language]] = {}
    for lang in LANGUAGES:
        groups.setdefault(lang.group, []).append(lang)
    return groups
