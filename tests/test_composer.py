import random

import pytest

from birthday_card.components.composer import (
    CLOSINGS,
    FALLBACK_PHRASE,
    TRAIT_PHRASES,
    compose_message,
)


class ExplodingRandom:
    def shuffle(self, _seq):
        raise AssertionError("composer should not run")

    def choice(self, _seq):
        raise AssertionError("composer should not run")


def _template_index(line, trait):
    matches = [i for i, phrase in enumerate(TRAIT_PHRASES) if phrase(trait) == line]
    assert len(matches) == 1, line
    return matches[0]


def test_no_traits_uses_fixed_greeting():
    assert compose_message("Sam", "30", []) == (
        "Happy 30th birthday, Sam! Wishing you a year filled with joy, "
        "laughter, and everything that makes you smile."
    )


def test_age_and_name_substituted_verbatim():
    out = compose_message("  Ana ", "twenty", [])
    assert out.startswith("Happy twentyth birthday,   Ana ! ")


def test_personal_message_wins_and_skips_composer():
    out = compose_message("Sam", "30", ["kind"], "  Love you lots!\n", rng=ExplodingRandom())
    assert out == "Love you lots!"


def test_blank_personal_message_is_ignored():
    out = compose_message("Sam", "30", [], "   ", rng=ExplodingRandom())
    assert out.startswith("Happy 30th birthday, Sam!")


@pytest.mark.parametrize("count", [1, 3, 8])
def test_one_sentence_per_trait_then_blank_then_closing(count):
    traits = [f"trait{i}" for i in range(count)]
    for seed in range(20):
        lines = compose_message("Sam", "30", traits, rng=random.Random(seed)).split("\n")
        assert len(lines) == count + 2
        for i, trait in enumerate(traits):
            _template_index(lines[i], trait)
        assert lines[count] == ""
        assert lines[-1] in CLOSINGS


def test_templates_are_not_repeated_within_a_card():
    traits = [f"trait{i}" for i in range(8)]
    lines = compose_message("Sam", "30", traits, rng=random.Random(3)).split("\n")
    used = {_template_index(line, trait) for line, trait in zip(lines, traits)}
    assert used == set(range(8))


def test_traits_beyond_pool_use_generic_sentence():
    traits = [f"trait{i}" for i in range(11)]
    lines = compose_message("Sam", "30", traits, rng=random.Random(5)).split("\n")
    assert len(lines) == 13
    for i in range(8):
        _template_index(lines[i], traits[i])
    for i in range(8, 11):
        assert lines[i] == FALLBACK_PHRASE.format(trait=traits[i])
    assert lines[11] == ""
    assert lines[12] in CLOSINGS


def test_seeded_source_is_deterministic():
    traits = ["kind", "funny", "brave"]
    first = compose_message("Sam", "30", traits, rng=random.Random(42))
    second = compose_message("Sam", "30", traits, rng=random.Random(42))
    assert first == second


def test_order_and_closing_vary_across_seeds():
    traits = ["kind", "funny", "brave"]
    outputs = {compose_message("Sam", "30", traits, rng=random.Random(s)) for s in range(50)}
    assert len(outputs) > 1
