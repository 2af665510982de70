"""All gapcheck rules."""

from gapcheck.rules import base, separator, wrapping

ALL_RULES: list[base.Rule] = [
    separator.SEP001(),
    wrapping.WRP001(),
]

__all__ = ["ALL_RULES"]
