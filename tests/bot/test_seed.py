"""Tests for seed generation."""

import random

from hypothesis import given, strategies as st

from seedbot.bot.seed import MAX_SEED_DIGITS, MIN_SEED_DIGITS, build_seed_url, generate_seed


class TestGenerateSeed:
    @given(rng_seed=st.integers(min_value=0, max_value=2**32))
    def test_digit_count_in_range(self, rng_seed: int):
        seed = generate_seed(random.Random(rng_seed))

        assert MIN_SEED_DIGITS <= len(str(seed)) <= MAX_SEED_DIGITS

    def test_every_length_occurs(self):
        rng = random.Random(42)

        lengths = {len(str(generate_seed(rng))) for _ in range(500)}

        assert lengths == {10, 11, 12, 13}

    def test_default_rng(self):
        assert 10**9 <= generate_seed() < 10**13

    def test_consecutive_seeds_differ(self):
        rng = random.Random(7)

        assert generate_seed(rng) != generate_seed(rng)


class TestBuildSeedUrl:
    def test_format(self):
        assert build_seed_url("https://rando.test", 1234567890) == (
            "https://rando.test/?seed=1234567890"
        )

    def test_trailing_slash(self):
        assert build_seed_url("https://rando.test/", 1234567890) == (
            "https://rando.test/?seed=1234567890"
        )
