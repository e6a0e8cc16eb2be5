from __future__ import annotations


class RuleSyntaxError(ValueError):
    """Malformed rule text (lexer or parser failure)."""


class UndefinedKeyError(ValueError):
    """A rule references config keys that the schema does not declare."""

    def __init__(self, keys: list[str]):
        self.keys = list(keys)
        super().__init__(f"undefined config key(s): {', '.join(self.keys)}")
