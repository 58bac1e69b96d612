"""Compile options: defaults, validation, YAML config files and env overrides."""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from promptc.errors import ConfigError

# Placeholder unit price per token, not a pricing lookup.
COST_PER_TOKEN = 0.00001

ENV_PREFIX = "PROMPTC_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class CompileOptions:
    optimization_level: int = 2  # 0 = none, 3 = aggressive
    target_tokens: Optional[int] = None
    preserve_quality: bool = True
    enable_parallelization: bool = True
    # False reproduces the old behaviour of dropping Constraint/OutputFormat at lowering
    lower_directives: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.optimization_level, bool) or not isinstance(self.optimization_level, int):
            raise ConfigError(f"optimization_level must be an integer, got {self.optimization_level!r}")
        if not 0 <= self.optimization_level <= 3:
            raise ConfigError(f"optimization_level must be between 0 and 3, got {self.optimization_level}")
        if self.target_tokens is not None:
            if isinstance(self.target_tokens, bool) or not isinstance(self.target_tokens, int):
                raise ConfigError(f"target_tokens must be an integer, got {self.target_tokens!r}")
            if self.target_tokens <= 0:
                raise ConfigError(f"target_tokens must be positive, got {self.target_tokens}")

    def merged(self, **overrides: Any) -> "CompileOptions":
        """Copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def options_from_mapping(data: Mapping[str, Any], source: Optional[str] = None) -> CompileOptions:
    known = {f.name for f in fields(CompileOptions)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown option(s): {', '.join(unknown)}", source=source)
    try:
        return CompileOptions(**dict(data))
    except ConfigError as e:
        raise ConfigError(e.message, source=source) from e


def load_options(path: Path) -> CompileOptions:
    """Read compile options from a YAML mapping (optionally nested under ``compile:``)."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}", source=str(path)) from e
    if data is None:
        return CompileOptions()
    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping", source=str(path))
    if isinstance(data.get("compile"), dict):
        data = data["compile"]
    return options_from_mapping(data, source=str(path))


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def options_from_env(
    base: Optional[CompileOptions] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CompileOptions:
    """Apply PROMPTC_* environment variables on top of ``base``."""
    env = os.environ if environ is None else environ
    options = base or CompileOptions()
    overrides: dict[str, Any] = {}
    for f in fields(CompileOptions):
        key = ENV_PREFIX + f.name.upper()
        raw = env.get(key)
        if raw is None or raw == "":
            continue
        if f.name in ("optimization_level", "target_tokens"):
            overrides[f.name] = _parse_int(key, raw)
        else:
            overrides[f.name] = _parse_bool(key, raw)
    return options.merged(**overrides)
