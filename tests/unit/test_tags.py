"""Unit tests for tag vocabulary and autocomplete."""

from pathlib import Path

from codex_sessions.models import SessionRecord
from codex_sessions.tags import (
    apply_tag_suggestion,
    build_tag_index,
    get_tag_fragment,
    get_tag_suggestions,
)


def _session(name: str, tags: list) -> SessionRecord:
    return SessionRecord(file_path=Path(name), file_name=name, archived=False, display_name=name, tags=tags)


def test_build_tag_index_dedupes_and_sorts():
    sessions = [_session("a", ["Beta", "alpha"]), _session("b", ["alpha", "gamma", "BETA"])]
    assert build_tag_index(sessions) == ["alpha", "Beta", "gamma"]


def test_suggestions_match_fragment_and_exclude_used():
    assert get_tag_suggestions("alpha, b", ["beta", "bravo", "alpha"], 5) == ["beta", "bravo"]


def test_suggestions_empty_fragment_respects_limit():
    assert get_tag_suggestions("", ["beta", "alpha", "gamma"], 2) == ["alpha", "beta"]


def test_suggestions_after_separator_skip_used_tags():
    assert get_tag_suggestions("alpha, ", ["beta", "alpha", "gamma"], 5) == ["beta", "gamma"]


def test_fragment_is_not_excluded_from_its_own_match():
    # "beta" typed in full is both used and the fragment; it must still be offered
    assert get_tag_suggestions("alpha beta", ["beta", "betamax", "alpha"], 5) == ["beta", "betamax"]


def test_suggestions_case_insensitive():
    assert get_tag_suggestions("ALPHA, B", ["Bravo", "beta", "alpha"], 5) == ["beta", "Bravo"]


def test_no_vocabulary_no_suggestions():
    assert get_tag_suggestions("a", [], 5) == []


def test_get_tag_fragment_splits_prefix_and_fragment():
    assert get_tag_fragment("alpha, be") == ("alpha, ", "be")
    assert get_tag_fragment("alpha,") == ("alpha,", "")
    assert get_tag_fragment("") == ("", "")


def test_apply_tag_suggestion_replaces_fragment():
    assert apply_tag_suggestion("alpha, b", "beta") == "alpha, beta"
    assert apply_tag_suggestion("", "beta") == "beta"
