"""Client codecs and deployment tooling for the swap program."""

__version__ = "0.1.0"
