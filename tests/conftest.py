"""Shared pytest fixtures and prompts."""

import pytest
from pathlib import Path

SCENARIO_A = (
    "Generate a concise summary of the quarterly report. "
    "Context: the report covers Q3 financials, all figures in USD. "
    "This is optional background you can skip."
)

SCENARIO_B = "Format the output as json with fields: name, age: number."

# Long enough for the gateway; every sentence after the first is droppable.
PHOTOSYNTHESIS = (
    "Explain how photosynthesis works for a high school audience. "
    "Optional extra example: chlorophyll absorbs red and blue light. "
    "Optional extra example: a cactus stores water in its thick stem. "
    "Optional extra example: algae also photosynthesize in the ocean. "
    "Optional extra example: a leaf in bright sunlight makes more sugar."
)


@pytest.fixture
def examples_dir():
    """Path to tests/examples/ containing prompt .txt files."""
    return Path(__file__).parent / "examples"


@pytest.fixture(params=["quarterly_summary.txt", "json_profile.txt", "feedback_review.txt"])
def example_file(examples_dir, request):
    """Parametrized: one of the three example prompts."""
    return examples_dir / request.param


@pytest.fixture
def long_prompt(examples_dir):
    """~570 character prompt with one instruction and several context sentences."""
    return (examples_dir / "feedback_review.txt").read_text()
