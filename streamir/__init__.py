"""Intermediate representation of stream-based monitoring programs, a textual notation for it, and a rewrite-rule framework."""

__version__ = "0.1.0"

__all__ = ["types", "expressions", "memory", "ir", "parse", "rewriting"]