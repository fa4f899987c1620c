"""racetime.gg race room bot that rolls randomizer seeds."""

__version__ = "0.1.0"
