"""
Wildcard route pattern self-test.

Patterns use ``*`` for "any run of non-slash characters", as in the API's
route guards. Everything else matches literally.
"""
import re
from typing import Iterable, List, Pattern, Tuple

ROUTE_PATTERNS = (
    "/api/authenticated/*invite*",
    "/api/auth/*",
    "/api/family/*/wallet",
)

SAMPLE_PATHS = (
    "/api/authenticated/generate-peer-invite",
    "/api/authenticated/process-invitation",
    "/api/authenticated/other-endpoint",
    "/api/auth/otp-signin",
    "/api/auth/nested/path",
    "/api/family/cashu/wallet",
    "/api/family/wallet",
    "/api/individual/lightning/wallet",
)


def wildcard_to_regex(pattern: str) -> Pattern:
    """Anchored regex for *pattern*; ``*`` becomes ``[^/]*``."""
    parts = (re.escape(chunk) for chunk in pattern.split("*"))
    return re.compile("^" + "[^/]*".join(parts) + "$")


def match_paths(pattern: str, paths: Iterable[str]) -> List[Tuple[str, bool]]:
    regex = wildcard_to_regex(pattern)
    return [(path, regex.match(path) is not None) for path in paths]


def run_self_test(patterns: Iterable[str] = ROUTE_PATTERNS, paths: Iterable[str] = SAMPLE_PATHS) -> List[str]:
    """Report lines, one header per pattern and one MATCH / NO MATCH line per path."""
    paths = list(paths)
    lines = []
    for pattern in patterns:
        lines.append(f"Pattern: {pattern}  ->  {wildcard_to_regex(pattern).pattern}")
        for path, matched in match_paths(pattern, paths):
            lines.append(f"  {'MATCH   ' if matched else 'NO MATCH'}  {path}")
    return lines
