"""Lower the optimized AST to IR. Every statement kind is handled explicitly."""

from typing import Optional

from promptc.analyzer import Analysis
from promptc.ast_nodes import (
    Conditional,
    Constraint,
    Context,
    Instruction,
    Loop,
    OutputFormat,
    Program,
    Statement,
    VariableDecl,
    statement_text,
)
from promptc.config import CompileOptions
from promptc.errors import LoweringError
from promptc.ir import IRCost, IRInstruction, IRMetadata, IROperand, IRParallelGroup, IRProgram, Opcode

# Placeholder latency per model call; contexts ride along for free.
PROMPT_ESTIMATED_MS = 1000
PARALLEL_SPEEDUP = 1.5


def lower(
    program: Program,
    analysis: Optional[Analysis] = None,
    options: Optional[CompileOptions] = None,
    applied_passes: Optional[list[str]] = None,
) -> IRProgram:
    """Produce IR from AST. Code generation reads IR only."""
    options = options or CompileOptions()
    ir = IRProgram()
    for stmt in program.body:
        instruction = _stmt_to_instruction(stmt, options)
        if instruction:
            ir.instructions.append(instruction)

    groups = None
    if options.enable_parallelization and analysis is not None:
        groups = [
            IRParallelGroup(id=f"parallel_{i}", instructions=list(group), estimated_speedup=PARALLEL_SPEEDUP)
            for i, group in enumerate(analysis.parallelizable)
        ]
    ir.metadata = IRMetadata(
        original_tokens=program.metadata.token_estimate,
        optimized_tokens=sum(i.cost.tokens for i in ir.instructions),
        optimization_passes=list(applied_passes or []),
        parallel_groups=groups,
    )
    return ir


def _constant(stmt: Statement, opcode: Opcode, estimated_ms: int = 0, dependencies: Optional[list[str]] = None) -> IRInstruction:
    return IRInstruction(
        id=stmt.id,
        opcode=opcode,
        operands=[IROperand(kind="constant", value=statement_text(stmt))],
        dependencies=list(dependencies or []),
        cost=IRCost(tokens=stmt.metadata.token_estimate, estimated_ms=estimated_ms),
        separator=stmt.metadata.separator,
    )


def _stmt_to_instruction(stmt: Statement, options: CompileOptions) -> Optional[IRInstruction]:
    """Map one statement to an IR instruction. None means the statement is dropped."""
    if isinstance(stmt, Instruction):
        return _constant(stmt, Opcode.PROMPT, PROMPT_ESTIMATED_MS, stmt.dependencies)
    if isinstance(stmt, Context):
        return _constant(stmt, Opcode.CONTEXT)
    if isinstance(stmt, Constraint):
        return _constant(stmt, Opcode.CONSTRAINT) if options.lower_directives else None
    if isinstance(stmt, OutputFormat):
        return _constant(stmt, Opcode.FORMAT) if options.lower_directives else None
    if isinstance(stmt, (Conditional, Loop, VariableDecl)):
        raise LoweringError(f"{type(stmt).__name__} nodes are reserved and cannot be lowered yet (id={stmt.id})")
    raise LoweringError(f"No lowering for statement type {type(stmt).__name__}")
