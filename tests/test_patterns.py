"""Tests for the statement detectors and context heuristics."""

import pytest

from promptc import patterns
from promptc.ast_nodes import ConstraintKind, ContextScope, FormatKind, ModifierKind


def test_detect_instruction():
    m = patterns.detect_instruction("Summarize this report and be concise.")
    assert m.directive == "summarize"
    assert m.subject == "this report and be concise."
    assert m.modifiers == [ModifierKind.CONCISE]


def test_detect_instruction_needs_leading_verb():
    assert patterns.detect_instruction("Please summarize this report.") is None


@pytest.mark.parametrize("text,kind,value,strict", [
    ("Keep it to max 100 words exactly.", ConstraintKind.LENGTH, "100 words", True),
    ("Answer within 3 sentences.", ConstraintKind.LENGTH, "3 sentences", False),
    ("Please format as markdown.", ConstraintKind.FORMAT, "markdown", True),
    ("It should be written as a limerick.", ConstraintKind.STYLE, "a limerick", False),
    ("The tone should be professional.", ConstraintKind.TONE, "professional", False),
    ("The tone must be formal.", ConstraintKind.TONE, "formal", True),
])
def test_detect_constraint(text, kind, value, strict):
    c = patterns.detect_constraint(text)
    assert c.kind == kind
    assert c.value == value
    assert c.strict is strict


def test_detect_constraint_none():
    assert patterns.detect_constraint("The weather was pleasant.") is None


def test_parse_schema_hints():
    assert patterns.parse_schema_hints("name, age: number") == {"name": "string", "age": "number"}


@pytest.mark.parametrize("text,fmt,schema", [
    ("Return json with fields: name, age: number.", FormatKind.JSON, {"name": "string", "age": "number"}),
    ("Return plain json.", FormatKind.JSON, None),
    ("Reply with a markdown table.", FormatKind.MARKDOWN, None),
    ("Answer in python code.", FormatKind.CODE, {"language": "python"}),
    ("Give me a bulleted list.", FormatKind.LIST, None),
])
def test_detect_output_format(text, fmt, schema):
    m = patterns.detect_output_format(text)
    assert m.format == fmt
    assert m.schema == schema


def test_detect_output_format_none():
    assert patterns.detect_output_format("Hello there.") is None


@pytest.mark.parametrize("text,expected", [
    ("If the input is empty, return nothing.", True),
    ("When it rains, then close the windows.", True),
    ("Close the windows.", False),
])
def test_detect_conditional(text, expected):
    assert patterns.detect_conditional(text) is expected


def test_extract_modifiers_graded():
    found = patterns.extract_modifiers("Be very concise and creative.")
    assert [(m.kind, m.strength) for m in found] == [
        (ModifierKind.CONCISE, 0.9),
        (ModifierKind.CONCISE, 0.7),
        (ModifierKind.CREATIVE, 0.8),
    ]


@pytest.mark.parametrize("text,index,total,expected", [
    ("This is critical background information.", 1, 3, 8),
    ("Plain words that are long enough to not count as a short tail.", 0, 3, 6),
    ("Plain text.", 2, 3, 4),
    ("This is optional background you can skip.", 2, 3, 2),
    ("Optional extra example: the export tooling ran nightly.", 1, 3, 2),
])
def test_context_priority(text, index, total, expected):
    assert patterns.context_priority(text, index, total) == expected


def test_context_priority_clamped():
    text = "Critical background. " * 12
    assert patterns.context_priority(text, 0, 2) == 10


def test_context_required():
    assert patterns.context_required("Citing sources is mandatory.")
    assert not patterns.context_required("Nice weather today.")


def test_context_scope():
    assert patterns.context_scope("anything", 0) == ContextScope.GLOBAL
    assert patterns.context_scope("The overall goal is clarity.", 3) == ContextScope.GLOBAL
    assert patterns.context_scope("A side note.", 3) == ContextScope.LOCAL
