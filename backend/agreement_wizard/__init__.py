"""Employment agreement wizard backend with speculative background drafting."""

__version__ = "0.1.0"
