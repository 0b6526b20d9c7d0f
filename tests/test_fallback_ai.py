"""
Tests for the rule-based fallback responder.
"""
import random
import re

import pytest

from aigateway.fallback_ai import DEFAULT_RESPONSES, GREETING_RESPONSES, PatternMatcher, normalize_text


@pytest.fixture
def matcher():
    return PatternMatcher(rng=random.Random(42))


class TestPatternMatcher:
    def test_greeting_reply_comes_from_greeting_set(self, matcher):
        assert matcher.respond("hello there") in GREETING_RESPONSES

    def test_first_match_wins_in_declaration_order(self, matcher):
        # "hi" (greetings) comes before "joke"
        assert matcher.respond("hi, tell me a joke") in GREETING_RESPONSES

    def test_unmatched_message_uses_default_fillers(self, matcher):
        assert matcher.respond("purple elephants compile quickly") in DEFAULT_RESPONSES
        assert matcher.respond("xyzzy-nonsense") in DEFAULT_RESPONSES

    def test_empty_and_none_messages_never_raise(self, matcher):
        assert matcher.respond("") in DEFAULT_RESPONSES
        assert matcher.respond(None) in DEFAULT_RESPONSES

    def test_abbreviations_are_expanded_before_matching(self, matcher):
        assert matcher.respond("how r u") in matcher.responses_for("how_are_you")

    def test_same_seed_gives_same_reply(self):
        a = PatternMatcher(rng=random.Random(7))
        b = PatternMatcher(rng=random.Random(7))
        assert [a.respond("tell me a joke") for _ in range(5)] == [b.respond("tell me a joke") for _ in range(5)]

    def test_available_patterns_in_order(self, matcher):
        assert matcher.available_patterns() == [
            "greetings",
            "how_are_you",
            "emotional",
            "affection",
            "knowledge",
            "help",
            "thanks",
            "joke",
            "name",
            "goodbye",
        ]

    def test_matches_pattern(self, matcher):
        assert matcher.matches_pattern("goodbye friend", "goodbye")
        assert not matcher.matches_pattern("goodbye friend", "joke")
        assert not matcher.matches_pattern("anything", "no_such_pattern")

    def test_add_custom_pattern_accepts_strings_regexes_and_predicates(self, matcher):
        matcher.add_custom_pattern("weather", r"weather|rain", ["Looks sunny to me! ☀️"])
        matcher.add_custom_pattern("pizza", re.compile("pizza"), ["Pineapple belongs on pizza."])
        matcher.add_custom_pattern("shout", lambda text: text.endswith("!!!"), ["No need to shout!"])

        assert matcher.respond("will it rain") == "Looks sunny to me! ☀️"
        assert matcher.respond("pizza time") == "Pineapple belongs on pizza."
        assert matcher.respond("wow!!!") == "No need to shout!"
        assert matcher.available_patterns()[-3:] == ["weather", "pizza", "shout"]

    def test_re_registering_a_name_replaces_in_place(self, matcher):
        matcher.add_custom_pattern("joke", r"joke", ["Only one joke now."])
        assert matcher.available_patterns().index("joke") == 7
        assert matcher.respond("tell me a joke") == "Only one joke now."

    def test_custom_pattern_requires_responses(self, matcher):
        with pytest.raises(ValueError):
            matcher.add_custom_pattern("empty", r"x", [])

    def test_faulty_predicate_is_skipped(self, matcher):
        def broken(_text):
            raise RuntimeError("bad predicate")

        matcher.add_custom_pattern("broken", broken, ["never"])
        assert matcher.respond("zzz") in DEFAULT_RESPONSES


def test_normalize_text():
    assert normalize_text("Thank U, IDK plz") == "thank you, i dont know please"
    assert normalize_text("ur cuz") == "your because"
