"""Tests for AST -> IR lowering and code generation."""

import json

import pytest

from promptc.analyzer import analyze
from promptc.ast_nodes import Literal, Loop, Program, VariableDecl
from promptc.codegen import generate
from promptc.config import CompileOptions
from promptc.errors import LoweringError
from promptc.ir import IRInstruction, IROperand, IRProgram, Opcode
from promptc.lowering import lower
from promptc.optimizer import eliminate_dead_code
from promptc.parser import parse

from conftest import SCENARIO_A

EXTRACT = "Extract the customer details. Format the output as json with fields: name, age: number."
PARALLEL = "Summarize the meeting notes. Translate the agenda into Spanish."


def test_lower_scenario_a():
    program = parse(SCENARIO_A)
    ir = lower(program, analyze(program))
    assert ir.version == "1.0"
    assert [i.opcode for i in ir.instructions] == [Opcode.PROMPT, Opcode.CONTEXT, Opcode.CONTEXT]
    assert [i.id for i in ir.instructions] == ["inst_0", "ctx_1", "ctx_2"]
    assert ir.instructions[0].cost.estimated_ms == 1000
    assert ir.instructions[1].cost.estimated_ms == 0
    assert ir.instructions[0].operands[0].kind == "constant"
    assert ir.instructions[0].text == "Generate a concise summary of the quarterly report."
    assert ir.metadata.original_tokens == program.metadata.token_estimate
    assert ir.metadata.optimized_tokens == sum(n.metadata.token_estimate for n in program.body)


def test_prompt_carries_instruction_dependencies():
    program = parse("Topic: renewable energy. Write an essay about $topic.")
    ir = lower(program)
    assert ir.instructions[1].dependencies == ["ctx_0"]


def test_directives_lowered_by_default():
    program = parse(EXTRACT)
    ir = lower(program)
    assert [i.opcode for i in ir.instructions] == [Opcode.PROMPT, Opcode.FORMAT]
    assert ir.instructions[1].text == "Format the output as json with fields: name, age: number."


def test_legacy_lowering_drops_directives():
    program = parse(EXTRACT + " Keep it within 50 words.")
    ir = lower(program, options=CompileOptions(lower_directives=False))
    assert [i.opcode for i in ir.instructions] == [Opcode.PROMPT]
    assert "json" not in generate(ir)


def test_parallel_groups():
    program = parse(PARALLEL)
    ir = lower(program, analyze(program))
    groups = ir.metadata.parallel_groups
    assert len(groups) == 1
    assert groups[0].id == "parallel_0"
    assert groups[0].instructions == ["inst_0", "inst_1"]
    assert groups[0].estimated_speedup == 1.5


def test_parallel_groups_disabled():
    program = parse(PARALLEL)
    ir = lower(program, analyze(program), CompileOptions(enable_parallelization=False))
    assert ir.metadata.parallel_groups is None


def test_applied_passes_recorded():
    ir = lower(parse(SCENARIO_A), applied_passes=["Dead Code Elimination"])
    assert ir.metadata.optimization_passes == ["Dead Code Elimination"]


@pytest.mark.parametrize("node", [
    Loop(id="loop_0", collection=Literal(id="lit_0", value="items")),
    VariableDecl(id="var_0", name="tone", value=Literal(id="lit_0", value="dry")),
])
def test_reserved_nodes_raise(node):
    with pytest.raises(LoweringError):
        lower(Program(id="prog_0", body=[node]))


def test_to_dict_is_json_serializable():
    program = parse(PARALLEL)
    out = lower(program, analyze(program)).to_dict()
    data = json.loads(json.dumps(out))
    assert data["instructions"][0]["opcode"] == "PROMPT"
    assert data["instructions"][0]["operands"][0]["type"] == "constant"
    assert data["metadata"]["parallel_groups"][0]["instructions"] == ["inst_0", "inst_1"]


def test_generate_keeps_original_whitespace():
    ir = lower(parse(SCENARIO_A))
    assert generate(ir) == SCENARIO_A
    assert [i.separator for i in ir.instructions] == [" ", " ", ""]


def test_generate_reuses_separator_of_kept_node():
    program = parse("# Notes\n\nSummarize the notes. Optional extra example: skip me. Translate the agenda into Spanish.")
    optimized, _ = eliminate_dead_code(program)
    assert generate(lower(optimized)) == "# Notes\n\nSummarize the notes. Translate the agenda into Spanish."


def test_generate_defaults_to_blank_line():
    ir = IRProgram(instructions=[
        IRInstruction(id="inst_0", opcode=Opcode.PROMPT, operands=[IROperand(kind="constant", value="Write a haiku.")]),
        IRInstruction(id="ctx_1", opcode=Opcode.CONTEXT, operands=[IROperand(kind="constant", value="It is spring.")]),
    ])
    assert generate(ir) == "Write a haiku.\n\nIt is spring."


def test_generate_skips_empty_text():
    assert generate(lower(parse(""))) == ""
