"""
promptc editor backend. Serves the compile, analyze and gateway-optimize API.
Run from repo root: python -m editor.backend.main  (or uvicorn editor.backend.main:app --reload)
"""

import os
import sys
from pathlib import Path

# Ensure repo root and src/ are on path so we can import promptc without installing
_repo_root = Path(__file__).resolve().parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))
_src = _repo_root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from promptc import __version__
from promptc.analyzer import analyze
from promptc.compiler import GATEWAY_MIN_LENGTH, GATEWAY_MIN_REDUCTION, compile_prompt, optimize_for_request
from promptc.config import CompileOptions, options_from_env
from promptc.errors import ConfigError
from promptc.log import configure, get_logger
from promptc.parser import parse

# Load .env from repo root or editor/ so PROMPTC_* defaults can be set there
for d in (_repo_root, Path(__file__).resolve().parent.parent):
    load_dotenv(d / ".env")

logger = get_logger("promptc.editor")

app = FastAPI(title="promptc Editor API", version=__version__)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


# --- Request/response models ---

class CompileRequest(BaseModel):
    prompt: str
    optimization_level: int | None = None
    target_tokens: int | None = None
    preserve_quality: bool | None = None
    enable_parallelization: bool | None = None
    lower_directives: bool | None = None
    include_ast: bool = False


class CompileResponse(BaseModel):
    success: bool
    optimized_prompt: str
    metrics: dict
    errors: list[dict] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    ast: dict | None = None
    ir: dict | None = None


class AnalyzeRequest(BaseModel):
    prompt: str


class AnalyzeResponse(BaseModel):
    statements: list[dict]
    dependencies: dict[str, list[str]]
    structural_dependencies: list[str]
    parallelizable: list[list[str]]
    warnings: list[str]


class OptimizeRequest(BaseModel):
    prompt: str
    optimization_level: int = 2
    min_length: int = GATEWAY_MIN_LENGTH
    min_reduction: float = GATEWAY_MIN_REDUCTION


class OptimizeResponse(BaseModel):
    prompt: str
    applied: bool
    original_tokens: int | None = None
    optimized_tokens: int | None = None
    token_reduction: float | None = None


def _options_for(req: CompileRequest) -> CompileOptions:
    try:
        return options_from_env(CompileOptions()).merged(
            optimization_level=req.optimization_level,
            target_tokens=req.target_tokens,
            preserve_quality=req.preserve_quality,
            enable_parallelization=req.enable_parallelization,
            lower_directives=req.lower_directives,
        )
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- API routes ---

@app.get("/api/health")
def api_health() -> dict:
    return {"ok": True, "version": __version__}


@app.post("/api/compile", response_model=CompileResponse)
def api_compile(req: CompileRequest) -> CompileResponse:
    """Compile a prompt. Failures come back as success=false with the prompt unchanged."""
    options = _options_for(req)
    result = compile_prompt(req.prompt, options, logger)
    return CompileResponse(**result.to_dict(include_ast=req.include_ast))


@app.post("/api/analyze", response_model=AnalyzeResponse)
def api_analyze(req: AnalyzeRequest) -> AnalyzeResponse:
    """Parse and analyze only: statements, dependencies and parallel groups."""
    program = parse(req.prompt, logger)
    analysis = analyze(program)
    return AnalyzeResponse(
        statements=[{"id": s.id, "type": type(s).__name__} for s in program.body],
        dependencies=analysis.dependencies,
        structural_dependencies=program.dependencies,
        parallelizable=analysis.parallelizable,
        warnings=analysis.warnings,
    )


@app.post("/api/optimize", response_model=OptimizeResponse)
def api_optimize(req: OptimizeRequest) -> OptimizeResponse:
    """Gateway mode: return the compiled prompt only when it is long enough and saves enough."""
    if not 0 <= req.optimization_level <= 3:
        raise HTTPException(status_code=400, detail=f"optimization_level must be between 0 and 3, got {req.optimization_level}")
    prompt, result = optimize_for_request(
        req.prompt,
        optimization_level=req.optimization_level,
        min_length=req.min_length,
        min_reduction=req.min_reduction,
        log=logger,
    )
    if result is None:
        return OptimizeResponse(prompt=prompt, applied=False)
    return OptimizeResponse(
        prompt=prompt,
        applied=prompt != req.prompt,
        original_tokens=result.metrics.original_tokens,
        optimized_tokens=result.metrics.optimized_tokens,
        token_reduction=result.metrics.token_reduction,
    )


if __name__ == "__main__":
    import uvicorn
    configure(verbose=os.environ.get("PROMPTC_DEBUG") == "1")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
