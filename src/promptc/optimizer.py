"""Optimizer: ordered AST -> AST passes, each returning a new Program plus a report.

Passes never mutate their input and never raise on missing data; a pass with
nothing to do reports ``applied=False``.

Level gating:
  1  Dead Code Elimination
  2  + Constant Folding, Context Compression
  3  + Aggressive Optimization (only when quality need not be preserved)
"""

import math
from dataclasses import dataclass, field, replace
from typing import Optional

from promptc.ast_nodes import (
    Context,
    Instruction,
    Literal,
    Program,
    Statement,
    estimate_tokens,
    literal_text,
    render_tokens,
)
from promptc.config import COST_PER_TOKEN, CompileOptions
from promptc.log import get_logger

logger = get_logger(__name__)

DEAD_CODE_PRIORITY = 3
COMPRESS_MIN_CHARS = 40
COMPRESS_MIN_TOKENS = 15
SUMMARY_WORDS = 12
TRUNCATE_MIN_TOKENS = 80
TRUNCATE_MIN_CHARS = 16
TRUNCATION_MARKER = " [...] (aggressively truncated)"
QUALITY_CAVEAT = "Aggressive optimization may affect quality."


@dataclass
class Transformation:
    type: str
    description: str
    tokens_saved: int = 0
    cost_saved: float = 0.0

    @classmethod
    def saving(cls, type: str, description: str, tokens: int) -> "Transformation":
        return cls(type=type, description=description, tokens_saved=tokens, cost_saved=tokens * COST_PER_TOKEN)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "description": self.description,
            "tokens_saved": self.tokens_saved,
            "cost_saved": self.cost_saved,
        }


@dataclass
class PassResult:
    pass_name: str
    applied: bool = False
    transformations: list[Transformation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "pass_name": self.pass_name,
            "applied": self.applied,
            "transformations": [t.to_dict() for t in self.transformations],
            "warnings": self.warnings,
        }


def _rebuild(program: Program, body: list[Statement]) -> Program:
    """New Program over ``body``; dependency ids of dropped nodes are pruned."""
    alive = {node.id for node in body}
    new_body: list[Statement] = []
    for node in body:
        if isinstance(node, Instruction) and any(d not in alive for d in node.dependencies):
            node = replace(node, dependencies=[d for d in node.dependencies if d in alive])
        new_body.append(node)
    return replace(program, body=new_body, dependencies=[d for d in program.dependencies if d in alive])


def _with_text(node: Statement, text: str, tokens: int) -> Statement:
    """Copy of a Context/Instruction whose literal now reads ``text``."""
    meta = replace(
        node.metadata,
        token_estimate=tokens,
        original_tokens=node.metadata.original_tokens or node.metadata.token_estimate,
    )
    attr = "content" if isinstance(node, Context) else "subject"
    expr = getattr(node, attr)
    original = literal_text(expr)
    if isinstance(expr, Literal) and expr.original_value is not None:
        original = expr.original_value
    literal = Literal(id=getattr(expr, "id", f"lit_{node.id}"), value=text, original_value=original)
    return replace(node, metadata=meta, **{attr: literal})


def eliminate_dead_code(program: Program) -> tuple[Program, PassResult]:
    result = PassResult("Dead Code Elimination")
    body: list[Statement] = []
    for node in program.body:
        if isinstance(node, Context) and not node.required and node.priority < DEAD_CODE_PRIORITY:
            tokens = node.metadata.token_estimate
            result.transformations.append(
                Transformation.saving("dead_code_elimination", f"Removed low-priority context: {node.id}", tokens)
            )
            continue
        body.append(node)
    result.applied = bool(result.transformations)
    return _rebuild(program, body), result


def fold_constants(program: Program) -> tuple[Program, PassResult]:
    # TODO: merge adjacent Literal fragments inside Template expressions once the parser emits templates.
    return program, PassResult("Constant Folding")


def _summarize(text: str) -> str:
    words = text.split()
    head = " ".join(words[:SUMMARY_WORDS])
    return head + (" ... (summary)" if len(words) > SUMMARY_WORDS else " (summary)")


def compress_context(program: Program, target_tokens: Optional[int]) -> tuple[Program, PassResult]:
    result = PassResult("Context Compression")
    if not target_tokens or render_tokens(program.body) <= target_tokens:
        return program, result

    body: list[Statement] = []
    for node in program.body:
        if isinstance(node, Context):
            text = literal_text(node.content)
            before = node.metadata.token_estimate
            if len(text) > COMPRESS_MIN_CHARS or before > COMPRESS_MIN_TOKENS:
                summary = _summarize(text)
                after = estimate_tokens(summary)
                if after < before:
                    node = _with_text(node, summary, after)
                    result.transformations.append(
                        Transformation.saving(
                            "context_compression",
                            f"Compressed context node '{node.id}' from {before} to {after} tokens",
                            before - after,
                        )
                    )
        body.append(node)

    remaining = render_tokens(body)
    if remaining > target_tokens:
        result.warnings.append(
            f"Compressed context but could not fit under target_tokens={target_tokens}. Remaining est: {remaining}"
        )
    result.applied = bool(result.transformations)
    if not result.applied:
        return program, result
    return _rebuild(program, body), result


def aggressive_optimization(program: Program, target_tokens: Optional[int]) -> tuple[Program, PassResult]:
    """Drop least important contexts, then truncate oversized nodes, until under budget."""
    result = PassResult("Aggressive Optimization")
    body = list(program.body)
    total = render_tokens(body)

    if target_tokens is not None and total > target_tokens:
        candidates = sorted(
            (n for n in body if isinstance(n, Context)),
            key=lambda n: (n.required, n.priority, n.metadata.token_estimate),
        )
        for node in candidates:
            if total <= target_tokens:
                break
            body = [n for n in body if n.id != node.id]
            total = render_tokens(body)
            tokens = node.metadata.token_estimate
            result.transformations.append(
                Transformation.saving(
                    "context_removal",
                    f"Removed context node with id={node.id} (priority={node.priority}, tokens={tokens})",
                    tokens,
                )
            )

    if target_tokens is not None and total > target_tokens:
        truncated: list[Statement] = []
        running = 0
        for node in body:
            tokens = node.metadata.token_estimate
            if isinstance(node, (Context, Instruction)) and tokens > TRUNCATE_MIN_TOKENS and running + tokens > target_tokens:
                text = literal_text(node.content if isinstance(node, Context) else node.subject)
                max_len = max(TRUNCATE_MIN_CHARS, math.floor((target_tokens - running) / len(body) * 4))
                shortened = text[:max_len] + TRUNCATION_MARKER
                after = estimate_tokens(shortened)
                if after < tokens:
                    node = _with_text(node, shortened, after)
                    result.transformations.append(
                        Transformation.saving(
                            "aggressive_truncation",
                            f"Aggressively truncated {type(node).__name__} node id={node.id} from {tokens} to {after} tokens",
                            tokens - after,
                        )
                    )
                    tokens = after
            truncated.append(node)
            running += tokens
        body = truncated
        total = render_tokens(body)

    if target_tokens is not None and total > target_tokens:
        result.warnings.append(
            f"Aggressively optimized but could not fit under target_tokens={target_tokens}. Remaining est: {total}"
        )
    result.warnings.append(QUALITY_CAVEAT)
    result.applied = bool(result.transformations)
    if not result.applied:
        return program, result
    return _rebuild(program, body), result


def optimize(program: Program, options: CompileOptions) -> tuple[Program, list[PassResult]]:
    """Run the passes enabled by ``options`` in order."""
    results: list[PassResult] = []
    level = options.optimization_level
    if level < 1:
        return program, results

    program, res = eliminate_dead_code(program)
    results.append(res)

    if level >= 2:
        program, res = fold_constants(program)
        results.append(res)
        program, res = compress_context(program, options.target_tokens)
        results.append(res)

    if level >= 3 and not options.preserve_quality:
        program, res = aggressive_optimization(program, options.target_tokens)
        results.append(res)

    for res in results:
        logger.debug(
            "Optimization pass finished",
            pass_name=res.pass_name,
            applied=res.applied,
            transformations=len(res.transformations),
            tokens_saved=sum(t.tokens_saved for t in res.transformations),
        )
    return program, results
