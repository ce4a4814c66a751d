"""Tests for the wildcard route pattern self-test."""
import pytest

from backend_ops.tools.route_patterns import match_paths, run_self_test, wildcard_to_regex

INVITE_PATTERN = "/api/authenticated/*invite*"


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/api/authenticated/generate-peer-invite", True),
        ("/api/authenticated/invite", True),
        ("/api/authenticated/invites-pending", True),
        ("/api/authenticated/other-endpoint", False),
        ("/api/authenticated/process-invitation", False),
        ("/api/authenticated/nested/peer-invite", False),
        ("/api/other/generate-peer-invite", False),
    ],
)
def test_invite_pattern(path, expected):
    assert (wildcard_to_regex(INVITE_PATTERN).match(path) is not None) is expected


def test_star_does_not_cross_slashes():
    regex = wildcard_to_regex("/api/family/*/wallet")
    assert regex.match("/api/family/cashu/wallet")
    assert not regex.match("/api/family/a/b/wallet")


def test_literal_characters_are_escaped():
    regex = wildcard_to_regex("/api/v1.0/*")
    assert regex.match("/api/v1.0/users")
    assert not regex.match("/api/v1x0/users")


def test_match_paths_preserves_order():
    assert match_paths("/a/*", ["/a/b", "/c"]) == [("/a/b", True), ("/c", False)]


def test_self_test_report():
    lines = run_self_test([INVITE_PATTERN], ["/api/authenticated/generate-peer-invite", "/api/authenticated/other-endpoint"])

    assert lines[0].startswith(f"Pattern: {INVITE_PATTERN}")
    assert lines[1].split() == ["MATCH", "/api/authenticated/generate-peer-invite"]
    assert lines[2].split() == ["NO", "MATCH", "/api/authenticated/other-endpoint"]
