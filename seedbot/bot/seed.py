"""Randomizer seed generation."""

import random
from typing import Callable

MIN_SEED_DIGITS = 10
MAX_SEED_DIGITS = 13

SeedGenerator = Callable[[], int]


def generate_seed(rng: random.Random | None = None) -> int:
    """Generate a seed with 10 to 13 decimal digits.

    The digit count is drawn uniformly first, then the value uniformly within
    that digit count.
    """
    rng = rng or random.SystemRandom()
    digits = rng.randint(MIN_SEED_DIGITS, MAX_SEED_DIGITS)
    return rng.randint(10 ** (digits - 1), 10**digits - 1)


def build_seed_url(randomizer_web_host: str, seed: int) -> str:
    """Seed URL handed to racers."""
    return f"{randomizer_web_host.rstrip('/')}/?seed={seed}"
