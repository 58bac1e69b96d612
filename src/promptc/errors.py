"""Structured errors for promptc (parse, lowering, config)."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class PromptCompilerError(Exception):
    """Base for all promptc errors."""
    message: str
    offset: Optional[int] = None
    source: Optional[str] = None

    def __str__(self) -> str:
        loc = ""
        if self.source:
            loc = f"{self.source}:"
        if self.offset is not None:
            loc += f"{self.offset}: "
        elif loc:
            loc += " "
        return f"{loc}{self.message}"


class ParseError(PromptCompilerError):
    """Prompt text could not be turned into an AST."""
    pass


class LoweringError(PromptCompilerError):
    """A statement kind has no IR lowering."""
    pass


class ConfigError(PromptCompilerError):
    """Compile options are out of range or a config file is malformed."""
    pass
