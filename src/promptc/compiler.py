"""
Compiler façade: parse -> analyze -> optimize -> lower -> generate.

``compile_prompt`` never raises. Any failure inside the pipeline is logged and
degrades to a verbatim passthrough of the original prompt with
``success=False``.
"""

from dataclasses import dataclass, field
from typing import Optional

from promptc.analyzer import analyze
from promptc.ast_nodes import Program, estimate_tokens, to_dict
from promptc.codegen import generate
from promptc.config import COST_PER_TOKEN, CompileOptions
from promptc.ir import IRProgram
from promptc.log import ensure_logger, get_logger
from promptc.lowering import lower
from promptc.optimizer import PassResult, optimize
from promptc.parser import parse

logger = get_logger(__name__)

# Gateway defaults: leave short prompts alone, keep the rewrite only if it pays off.
GATEWAY_MIN_LENGTH = 200
GATEWAY_MIN_REDUCTION = 10.0


@dataclass
class CompileIssue:
    type: str  # "syntax"
    message: str
    severity: str = "error"

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message, "severity": self.severity}


@dataclass
class Metrics:
    original_tokens: int
    optimized_tokens: int
    token_reduction: float = 0.0  # percent
    estimated_cost: float = 0.0
    optimization_passes: list[PassResult] = field(default_factory=list)

    @classmethod
    def identity(cls, prompt: str) -> "Metrics":
        tokens = estimate_tokens(prompt)
        return cls(original_tokens=tokens, optimized_tokens=tokens)

    def to_dict(self) -> dict:
        return {
            "original_tokens": self.original_tokens,
            "optimized_tokens": self.optimized_tokens,
            "token_reduction": self.token_reduction,
            "estimated_cost": self.estimated_cost,
            "optimization_passes": [p.to_dict() for p in self.optimization_passes],
        }


@dataclass
class CompilationResult:
    success: bool
    optimized_prompt: str
    metrics: Metrics
    errors: list[CompileIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    ast: Optional[Program] = None
    ir: Optional[IRProgram] = None

    def to_dict(self, include_ast: bool = False) -> dict:
        out = {
            "success": self.success,
            "optimized_prompt": self.optimized_prompt,
            "metrics": self.metrics.to_dict(),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
        }
        if include_ast:
            out["ast"] = to_dict(self.ast) if self.ast is not None else None
            out["ir"] = self.ir.to_dict() if self.ir is not None else None
        return out


def token_reduction(original: int, optimized: int) -> float:
    if original <= 0:
        return 0.0
    return (1 - optimized / original) * 100


def compile_prompt(prompt: str, options: Optional[CompileOptions] = None, log=None) -> CompilationResult:
    """
    Compile a prompt into a shorter, equivalent prompt.

    Parameters
    ----------
    prompt  : free-text prompt
    options : CompileOptions (level 2, quality preserved, parallel groups on by default)
    log     : structured logger (``promptc.log.get_logger`` adapter); module logger if omitted

    Returns
    -------
    CompilationResult; on failure ``optimized_prompt`` is ``prompt`` unchanged.
    """
    options = options or CompileOptions()
    log = ensure_logger(log, logger)
    try:
        log.info(
            "Starting prompt compilation",
            prompt_length=len(prompt),
            optimization_level=options.optimization_level,
            preserve_quality=options.preserve_quality,
        )
        original_tokens = estimate_tokens(prompt)

        ast = parse(prompt, log)
        analysis = analyze(ast)
        optimized, passes = optimize(ast, options)
        ir = lower(
            optimized,
            analysis,
            options,
            applied_passes=[p.pass_name for p in passes if p.applied],
        )
        optimized_prompt = generate(ir)
        optimized_tokens = estimate_tokens(optimized_prompt)
        reduction = token_reduction(original_tokens, optimized_tokens)

        log.info(
            "Prompt compilation completed",
            original_tokens=original_tokens,
            optimized_tokens=optimized_tokens,
            reduction=f"{reduction:.1f}%",
            preserve_quality=options.preserve_quality,
        )
        warnings = list(analysis.warnings)
        for p in passes:
            warnings.extend(p.warnings)
        return CompilationResult(
            success=True,
            optimized_prompt=optimized_prompt,
            metrics=Metrics(
                original_tokens=original_tokens,
                optimized_tokens=optimized_tokens,
                token_reduction=reduction,
                estimated_cost=optimized_tokens * COST_PER_TOKEN,
                optimization_passes=passes,
            ),
            warnings=warnings,
            ast=ast,
            ir=ir,
        )
    except Exception as e:
        log.error("Prompt compilation failed", error=str(e), preserve_quality=options.preserve_quality, exc_info=True)
        return CompilationResult(
            success=False,
            optimized_prompt=prompt,
            metrics=Metrics.identity(prompt if isinstance(prompt, str) else str(prompt)),
            errors=[CompileIssue(type="syntax", message=str(e) or "Compilation failed")],
        )


def optimize_for_request(
    prompt: str,
    optimization_level: int = 2,
    min_length: int = GATEWAY_MIN_LENGTH,
    min_reduction: float = GATEWAY_MIN_REDUCTION,
    log=None,
) -> tuple[str, Optional[CompilationResult]]:
    """Gateway helper: the compiled prompt if it is worth sending, else the original.

    Prompts of ``min_length`` characters or fewer are not compiled (result is None).
    """
    log = ensure_logger(log, logger)
    if not prompt or len(prompt) <= min_length:
        return prompt, None
    result = compile_prompt(prompt, CompileOptions(optimization_level=optimization_level), log)
    if result.success and result.metrics.token_reduction > min_reduction:
        log.info(
            "Prompt compiler applied optimizations",
            original_tokens=result.metrics.original_tokens,
            optimized_tokens=result.metrics.optimized_tokens,
            reduction=f"{result.metrics.token_reduction:.1f}%",
            passes=len(result.metrics.optimization_passes),
        )
        return result.optimized_prompt, result
    return prompt, result
