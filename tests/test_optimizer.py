"""Tests for the optimization passes."""

import copy

import pytest

from promptc.ast_nodes import Context, Instruction, render_tokens, to_dict
from promptc.config import CompileOptions
from promptc.optimizer import (
    QUALITY_CAVEAT,
    TRUNCATION_MARKER,
    aggressive_optimization,
    compress_context,
    eliminate_dead_code,
    fold_constants,
    optimize,
)
from promptc.parser import parse

from conftest import SCENARIO_A

SURVEY = (
    "Summarize the findings below. The survey collected responses from four hundred participants "
    "across twelve regional offices during the spring and again during the autumn review cycle."
)
LONG_STORY = "Write " + "a story " * 60


def test_dead_code_elimination_removes_low_priority_context():
    program = parse(SCENARIO_A)
    before = to_dict(program)
    optimized, result = eliminate_dead_code(program)
    assert result.pass_name == "Dead Code Elimination"
    assert result.applied
    assert [n.id for n in optimized.body] == ["inst_0", "ctx_1"]
    assert result.transformations[0].type == "dead_code_elimination"
    assert result.transformations[0].tokens_saved == program.body[2].metadata.token_estimate
    assert result.transformations[0].cost_saved == pytest.approx(result.transformations[0].tokens_saved * 0.00001)
    # input untouched
    assert to_dict(program) == before


def test_dead_code_keeps_required_context():
    program = parse("Explain the chart. Optional extra example: citing it is mandatory.")
    assert program.body[1].priority < 3
    optimized, result = eliminate_dead_code(program)
    assert not result.applied
    assert len(optimized.body) == 2


def test_dead_code_prunes_dependencies_on_removed_nodes():
    program = parse("Describe tide pools. Optional extra example: topic is tide pools. Write an essay about $topic.")
    assert program.body[2].dependencies == ["ctx_1"]
    optimized, _ = eliminate_dead_code(program)
    assert [n.id for n in optimized.body] == ["inst_0", "inst_2"]
    assert optimized.body[1].dependencies == []
    assert program.body[2].dependencies == ["ctx_1"]


def test_constant_folding_is_noop():
    program = parse(SCENARIO_A)
    optimized, result = fold_constants(program)
    assert optimized is program
    assert result.pass_name == "Constant Folding"
    assert not result.applied
    assert result.transformations == []


def test_compress_context_under_budget_is_noop():
    program = parse(SURVEY)
    optimized, result = compress_context(program, None)
    assert optimized is program
    assert not result.applied
    _, result = compress_context(program, 10_000)
    assert not result.applied


def test_compress_context_summarizes_long_context():
    program = parse(SURVEY)
    original = copy.deepcopy(program)
    optimized, result = compress_context(program, 10)
    assert result.applied
    t = result.transformations[0]
    assert t.type == "context_compression"
    assert t.tokens_saved > 0

    ctx = optimized.body[1]
    assert isinstance(ctx, Context)
    assert ctx.content.value.endswith(" ... (summary)")
    assert len(ctx.content.value.split()) == 14
    assert ctx.content.original_value == original.body[1].content.value
    assert ctx.metadata.original_tokens == original.body[1].metadata.token_estimate
    assert ctx.metadata.token_estimate < ctx.metadata.original_tokens
    assert any("could not fit under target_tokens=10" in w for w in result.warnings)
    assert program.body[1].content.value == original.body[1].content.value


def test_aggressive_optimization_removes_least_important_first():
    program = parse(SCENARIO_A)
    budget = render_tokens(program.body) - 5
    optimized, result = aggressive_optimization(program, budget)
    assert [t.type for t in result.transformations] == ["context_removal"]
    assert "ctx_2" in result.transformations[0].description
    assert [n.id for n in optimized.body] == ["inst_0", "ctx_1"]
    assert result.warnings == [QUALITY_CAVEAT]


def test_aggressive_optimization_truncates_oversized_instruction():
    program = parse(LONG_STORY)
    optimized, result = aggressive_optimization(program, 10)
    assert [t.type for t in result.transformations] == ["aggressive_truncation"]
    inst = optimized.body[0]
    assert isinstance(inst, Instruction)
    assert inst.subject.value == "a story " * 5 + TRUNCATION_MARKER
    assert inst.metadata.token_estimate < program.body[0].metadata.token_estimate
    assert result.warnings[-1] == QUALITY_CAVEAT
    assert any("could not fit" in w for w in result.warnings)


def test_aggressive_caveat_without_budget():
    program = parse(SCENARIO_A)
    optimized, result = aggressive_optimization(program, None)
    assert optimized is program
    assert not result.applied
    assert result.warnings == [QUALITY_CAVEAT]


@pytest.mark.parametrize("level,preserve,expected", [
    (0, True, []),
    (1, True, ["Dead Code Elimination"]),
    (2, True, ["Dead Code Elimination", "Constant Folding", "Context Compression"]),
    (3, True, ["Dead Code Elimination", "Constant Folding", "Context Compression"]),
    (3, False, ["Dead Code Elimination", "Constant Folding", "Context Compression", "Aggressive Optimization"]),
])
def test_level_gating(level, preserve, expected):
    options = CompileOptions(optimization_level=level, preserve_quality=preserve)
    _, results = optimize(parse(SCENARIO_A), options)
    assert [r.pass_name for r in results] == expected


def test_optimize_level_zero_returns_input():
    program = parse(SCENARIO_A)
    optimized, results = optimize(program, CompileOptions(optimization_level=0))
    assert optimized is program
    assert results == []
