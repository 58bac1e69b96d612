"""promptc: compile natural-language prompts into shorter, equivalent prompts."""

__version__ = "0.1.0"
