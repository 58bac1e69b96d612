"""AST node definitions for prompts. Every detected segment maps to one statement node."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


def estimate_tokens(text: str) -> int:
    """Deterministic token approximation: one token per four characters."""
    return math.ceil(len(text) / 4)


class ContextScope(Enum):
    GLOBAL = "global"
    LOCAL = "local"


class ConstraintKind(Enum):
    LENGTH = "length"
    FORMAT = "format"
    STYLE = "style"
    TONE = "tone"
    CUSTOM = "custom"


class FormatKind(Enum):
    JSON = "json"
    MARKDOWN = "markdown"
    CODE = "code"
    TEXT = "text"
    LIST = "list"


class ModifierKind(Enum):
    CONCISE = "concise"
    DETAILED = "detailed"
    CREATIVE = "creative"
    FACTUAL = "factual"
    STEP_BY_STEP = "step-by-step"


@dataclass
class NodeMetadata:
    start_offset: int = 0
    end_offset: int = 0
    token_estimate: int = 0
    source: Optional[str] = None  # segment text the node was built from
    original_tokens: Optional[int] = None  # set when a pass rewrote the node
    separator: Optional[str] = None  # whitespace that followed the segment in the prompt

    @classmethod
    def for_text(cls, text: str, start: int, end: int, separator: Optional[str] = None) -> "NodeMetadata":
        return cls(
            start_offset=start,
            end_offset=end,
            token_estimate=estimate_tokens(text),
            source=text,
            separator=separator,
        )


# --- Expressions ---

class Expr:
    """Base for all expressions; no fields so subclasses control field order."""
    pass


@dataclass
class Literal(Expr):
    id: str
    value: Any
    compressible: bool = True
    original_value: Optional[Any] = None  # pre-rewrite value, kept for traceability


@dataclass
class VariableRef(Expr):
    id: str
    name: str


@dataclass
class Template(Expr):
    """Ordered mix of literal fragments (str) and variable references."""
    id: str
    parts: list[Union[str, VariableRef]] = field(default_factory=list)


@dataclass
class FunctionCall(Expr):
    id: str
    name: str
    args: list[Expr] = field(default_factory=list)
    pure: bool = False  # cacheable


@dataclass
class BinaryOp(Expr):
    id: str
    left: Expr
    op: str
    right: Expr


@dataclass
class Modifier:
    id: str
    kind: ModifierKind
    strength: float = 0.7


# --- Statements ---

class Statement:
    """Base for statements; subclasses are dataclasses with metadata last."""


@dataclass
class Instruction(Statement):
    id: str
    directive: str  # lower-cased imperative verb, e.g. "generate"
    subject: Expr
    modifiers: list[Modifier] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)  # ids the variable resolver drew values from
    variables: list[str] = field(default_factory=list)  # resolved variable names, diagnostics only
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


@dataclass
class Context(Statement):
    id: str
    scope: ContextScope
    content: Expr
    priority: int = 5  # 0-10
    required: bool = False
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


@dataclass
class Constraint(Statement):
    id: str
    kind: ConstraintKind
    value: Expr
    strict: bool = False
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


@dataclass
class OutputFormat(Statement):
    id: str
    format: FormatKind
    schema: Optional[dict[str, str]] = None  # field name -> type hint
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


# Reserved: the parser folds conditionals into Context and never emits these.
@dataclass
class Conditional(Statement):
    id: str
    condition: Expr
    then_body: list[Statement] = field(default_factory=list)
    else_body: list[Statement] = field(default_factory=list)
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


@dataclass
class Loop(Statement):
    id: str
    collection: Expr
    body: list[Statement] = field(default_factory=list)
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


@dataclass
class VariableDecl(Statement):
    id: str
    name: str
    value: Expr
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


# --- Program ---

@dataclass
class Program:
    id: str
    body: list[Statement]
    dependencies: list[str] = field(default_factory=list)  # structural: context ids referenced by instructions
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


def literal_text(expr: Optional[Expr]) -> str:
    """Text of a literal-ish expression; empty for anything else."""
    if isinstance(expr, Literal):
        return "" if expr.value is None else str(expr.value)
    if isinstance(expr, Template):
        return "".join(p if isinstance(p, str) else "{" + p.name + "}" for p in expr.parts)
    if isinstance(expr, VariableRef):
        return "{" + expr.name + "}"
    return ""


def statement_text(stmt: Statement) -> str:
    """Prompt text a statement renders to. Instructions get their verb back."""
    if isinstance(stmt, Instruction):
        subject = literal_text(stmt.subject)
        return f"{stmt.directive.capitalize()} {subject}".strip()
    if isinstance(stmt, Context):
        return literal_text(stmt.content)
    if isinstance(stmt, (Constraint, OutputFormat)):
        return stmt.metadata.source or ""
    return ""


def to_dict(node: Any) -> Any:
    """JSON-serializable view of any node, tagged with its node type."""
    if isinstance(node, Enum):
        return node.value
    if isinstance(node, list):
        return [to_dict(n) for n in node]
    if isinstance(node, dict):
        return {k: to_dict(v) for k, v in node.items()}
    if isinstance(node, NodeMetadata):
        return {k: v for k, v in vars(node).items() if v is not None}
    if hasattr(node, "__dataclass_fields__"):
        out = {"type": type(node).__name__}
        for name in node.__dataclass_fields__:
            out[name] = to_dict(getattr(node, name))
        return out
    return node


DEFAULT_SEPARATOR = "\n\n"


def join_rendered(parts: list[tuple[str, Optional[str]]]) -> str:
    """Join (text, separator) pairs; each kept part is followed by its own separator.

    Dropping a part never lengthens the result. Parts without a recorded
    separator are followed by a blank line.
    """
    kept = [(text, sep) for text, sep in parts if text]
    out: list[str] = []
    for i, (text, sep) in enumerate(kept):
        if i:
            prev_sep = kept[i - 1][1]
            out.append(DEFAULT_SEPARATOR if prev_sep is None else prev_sep)
        out.append(text)
    return "".join(out)


def render_tokens(body: list[Statement]) -> int:
    """Token estimate of the prompt ``body`` would render to, separators included."""
    return estimate_tokens(join_rendered([(statement_text(s), s.metadata.separator) for s in body]))
