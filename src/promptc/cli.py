"""CLI entry point: parse, analyze, lower, compile, explain, serve."""

import json
import os
from pathlib import Path
from typing import Optional

import typer

from promptc import __version__
from promptc.analyzer import analyze
from promptc.ast_nodes import Context, Instruction
from promptc.compiler import compile_prompt
from promptc.config import CompileOptions, load_options, options_from_env
from promptc.errors import ConfigError
from promptc.log import configure
from promptc.lowering import lower
from promptc.optimizer import optimize
from promptc.parser import parse

app = typer.Typer(
    name="promptc",
    help="Prompt compiler: shrink prompts through parse, optimize and lower passes.",
)


def _load_source(path: Path) -> str:
    if not path.exists():
        typer.echo(f"Error: file not found: {path}", err=True)
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def _options(
    config: Optional[Path],
    level: Optional[int] = None,
    target: Optional[int] = None,
    aggressive: Optional[bool] = None,
    legacy_lowering: Optional[bool] = None,
) -> CompileOptions:
    try:
        base = load_options(config) if config else CompileOptions()
        options = options_from_env(base)
        return options.merged(
            optimization_level=level,
            target_tokens=target,
            preserve_quality=None if aggressive is None else not aggressive,
            lower_directives=None if legacy_lowering is None else not legacy_lowering,
        )
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command("parse")
def parse_cmd(file: Path = typer.Argument(..., help="prompt text file")):
    """Parse file and print the statements (debug)."""
    program = parse(_load_source(file))
    typer.echo(f"Parsed {len(program.body)} statements.")
    for i, s in enumerate(program.body):
        line = f"  {i + 1}. {type(s).__name__} {s.id}"
        if isinstance(s, Instruction):
            line += f" directive={s.directive} modifiers={[m.kind.value for m in s.modifiers]}"
        elif isinstance(s, Context):
            line += f" priority={s.priority} required={s.required} scope={s.scope.value}"
        typer.echo(line)


@app.command("analyze")
def analyze_cmd(file: Path = typer.Argument(..., help="prompt text file")):
    """Print dependency map and parallelizable groups as JSON."""
    program = parse(_load_source(file))
    out = analyze(program).to_dict()
    out["structural_dependencies"] = program.dependencies
    typer.echo(json.dumps(out, indent=2))


@app.command("lower")
def lower_cmd(
    file: Path = typer.Argument(..., help="prompt text file"),
    level: Optional[int] = typer.Option(None, "--level", "-O", help="Optimization level 0-3"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML options file"),
):
    """Emit IR JSON to stdout."""
    options = _options(config, level)
    program = parse(_load_source(file))
    analysis = analyze(program)
    optimized, passes = optimize(program, options)
    ir = lower(optimized, analysis, options, [p.pass_name for p in passes if p.applied])
    typer.echo(json.dumps(ir.to_dict(), indent=2))


@app.command("compile")
def compile_cmd(
    file: Path = typer.Argument(..., help="prompt text file"),
    level: Optional[int] = typer.Option(None, "--level", "-O", help="Optimization level 0-3"),
    target: Optional[int] = typer.Option(None, "--target", help="Target token budget"),
    aggressive: Optional[bool] = typer.Option(None, "--aggressive/--preserve-quality", help="Allow lossy level-3 pass"),
    legacy_lowering: Optional[bool] = typer.Option(
        None, "--legacy-lowering/--lower-directives", help="Drop constraint and format statements at lowering"
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML options file"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
):
    """Compile the prompt and print the optimized text."""
    if verbose:
        configure(True)
    options = _options(config, level, target, aggressive, legacy_lowering)
    result = compile_prompt(_load_source(file), options)
    if as_json:
        typer.echo(json.dumps(result.to_dict(include_ast=True), indent=2, default=str))
    else:
        typer.echo(result.optimized_prompt)
        m = result.metrics
        typer.echo(
            f"-- {m.original_tokens} -> {m.optimized_tokens} tokens ({m.token_reduction:.1f}% reduction)",
            err=True,
        )
        for w in result.warnings:
            typer.echo(f"warning: {w}", err=True)
    if not result.success:
        for e in result.errors:
            typer.echo(f"{e.severity}: {e.message}", err=True)
        raise typer.Exit(1)


@app.command("explain")
def explain_cmd(
    file: Path = typer.Argument(..., help="prompt text file"),
    level: Optional[int] = typer.Option(None, "--level", "-O", help="Optimization level 0-3"),
    target: Optional[int] = typer.Option(None, "--target", help="Target token budget"),
    aggressive: Optional[bool] = typer.Option(None, "--aggressive/--preserve-quality"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML options file"),
):
    """Print what each optimization pass did."""
    options = _options(config, level, target, aggressive)
    result = compile_prompt(_load_source(file), options)
    typer.echo("Passes:")
    for p in result.metrics.optimization_passes:
        typer.echo(f"  - {p.pass_name}: {'applied' if p.applied else 'no-op'}")
        for t in p.transformations:
            typer.echo(f"      {t.type}: {t.description} (-{t.tokens_saved} tokens)")
        for w in p.warnings:
            typer.echo(f"      warning: {w}")
    if result.ir is not None:
        typer.echo("Instructions:")
        for i in result.ir.instructions:
            typer.echo(f"  - {i.opcode.value} {i.id} ({i.cost.tokens} tokens)")


@app.command("serve")
def serve_cmd(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(int(os.environ.get("PORT", "8000")), "--port"),
):
    """Run the HTTP API (editor backend) with uvicorn."""
    import uvicorn
    uvicorn.run("editor.backend.main:app", host=host, port=port)


@app.callback()
def main():
    """Prompt compiler: natural-language prompt in, shorter equivalent prompt out."""
    pass


@app.command("version")
def version_cmd():
    """Print the promptc version."""
    typer.echo(__version__)


if __name__ == "__main__":
    app()
