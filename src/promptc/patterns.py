"""Pattern matchers: one detector per statement kind, plus the context heuristics.

Detectors are independent and return a match object or None. The parser runs
them in priority order (instruction, constraint, output format, conditional)
and the first hit wins.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from promptc.ast_nodes import ConstraintKind, ContextScope, FormatKind, ModifierKind

_I = re.IGNORECASE

IMPERATIVE_VERBS = (
    ("generate", "create", "write", "compose", "draft", "produce", "build", "make", "develop", "design"),
    ("analyze", "examine", "evaluate", "assess", "review", "study", "investigate", "explore"),
    ("explain", "describe", "clarify", "elaborate", "detail", "outline", "summarize", "condense"),
    ("translate", "convert", "transform", "change", "modify", "adapt", "rewrite", "rephrase"),
    ("compare", "contrast", "differentiate", "distinguish", "relate"),
    ("classify", "categorize", "organize", "group", "sort", "arrange"),
    ("extract", "identify", "find", "locate", "discover", "detect"),
    ("suggest", "recommend", "propose", "advise"),
)

INSTRUCTION_PATTERNS = [
    re.compile(r"^(" + "|".join(family) + r")\s+(.+)", _I | re.DOTALL) for family in IMPERATIVE_VERBS
]

# In-segment modifier cues (detector 1); all carry the default strength.
INLINE_MODIFIERS = (
    (re.compile(r"\b(concise|brief|short)\b", _I), ModifierKind.CONCISE),
    (re.compile(r"\b(detailed|comprehensive|thorough|in-depth)\b", _I), ModifierKind.DETAILED),
    (re.compile(r"\b(creative|original|innovative)\b", _I), ModifierKind.CREATIVE),
    (re.compile(r"\b(factual|accurate|precise)\b", _I), ModifierKind.FACTUAL),
    (re.compile(r"\b(step-by-step|stepwise|sequential)\b", _I), ModifierKind.STEP_BY_STEP),
)
INLINE_MODIFIER_STRENGTH = 0.7

# Whole-prompt modifier cues with graded strength.
GLOBAL_MODIFIERS = (
    (re.compile(r"\b(very|extremely|highly)\s+(concise|brief)\b", _I), ModifierKind.CONCISE, 0.9),
    (re.compile(r"\b(concise|brief|short)\b", _I), ModifierKind.CONCISE, 0.7),
    (re.compile(r"\b(very|extremely|highly)\s+(detailed|comprehensive|thorough)\b", _I), ModifierKind.DETAILED, 0.9),
    (re.compile(r"\b(detailed|comprehensive|thorough|in-depth)\b", _I), ModifierKind.DETAILED, 0.7),
    (re.compile(r"\b(creative|original|innovative|imaginative)\b", _I), ModifierKind.CREATIVE, 0.8),
    (re.compile(r"\b(factual|accurate|precise|exact)\b", _I), ModifierKind.FACTUAL, 0.8),
    (re.compile(r"\b(step-by-step|stepwise|sequential)\b", _I), ModifierKind.STEP_BY_STEP, 0.9),
)

LENGTH_CONSTRAINT = re.compile(
    r"\b(within|max|maximum|at most|up to|limit|restrict)\s+(\d+)\s*"
    r"(words|characters|chars|tokens|sentences|paragraphs)\b",
    _I,
)
FORMAT_CONSTRAINT = re.compile(
    r"\b(format|structure|organize|arrange)\s+(as|in|into)\s+"
    r"(json|markdown|code|yaml|xml|csv|table|list|bullets?|numbered)\b",
    _I,
)
STYLE_CONSTRAINT = re.compile(r"\b(style|written|composed|formatted)\s+(as|in|like)\s+(.+?)(?:\.|$)", _I)
TONE_CONSTRAINT = re.compile(
    r"\b(tone|mood|voice)\s+(should be|must be|is|be)\s+"
    r"(professional|casual|formal|informal|friendly|serious|humorous|technical|academic|conversational)\b",
    _I,
)
LENGTH_INTENSIFIER = re.compile(r"\b(exactly|precisely|strictly)\b", _I)
TONE_INTENSIFIER = re.compile(r"\b(must|required|mandatory)\b", _I)

JSON_CUE = re.compile(r"\bjson\b", _I)
JSON_SCHEMA_HINT = re.compile(r"\b(?:with|including|containing)\s+(?:fields?|properties?|keys?)\s*:?\s*([^.]+)", _I)
MARKDOWN_CUE = re.compile(r"\b(markdown|md|\.md)\b", _I)
CODE_CUE = re.compile(r"\b(code|source|programming|syntax)\b", _I)
CODE_LANGUAGE = re.compile(r"\b(?:in|using|with)\s+(\w+)\s+code", _I)
LIST_CUE = re.compile(r"\b(list|bullets?|numbered|items?)\b", _I)
SCHEMA_FIELD = re.compile(r"(\w+)(?:\s*:\s*(\w+))?")

CONDITIONAL_LEADING = re.compile(r"^(if|when|whenever|provided that|assuming|suppose)\s+", _I)
CONDITIONAL_EMBEDDED = re.compile(r"\b(if|when|whenever)\s+[^,]+,\s*(then|do|perform)", _I)
CONDITIONAL_PRIORITY = 8

IMPORTANCE_WORDS = re.compile(r"\b(important|critical|essential|required|necessary|must|key|primary)\b", _I)
BACKGROUND_WORDS = re.compile(r"\b(context|background|information|details?|data)\b", _I)
OPTIONAL_WORDS = re.compile(r"\b(optional|additional|extra|supplementary|nice to have)\b", _I)
EXAMPLE_WORDS = re.compile(r"\b(example|sample|instance|illustration)\b", _I)
NECESSITY_WORDS = re.compile(r"\b(required|necessary|essential|critical|must|mandatory|important|key|primary|vital)\b", _I)
GLOBAL_WORDS = re.compile(r"\b(global|general|universal|overall|system-wide)\b", _I)

DEFAULT_PRIORITY = 5
MAX_PRIORITY = 10


@dataclass
class InstructionMatch:
    directive: str
    subject: str
    modifiers: list[ModifierKind] = field(default_factory=list)


@dataclass
class ConstraintMatch:
    kind: ConstraintKind
    value: str
    strict: bool


@dataclass
class FormatMatch:
    format: FormatKind
    schema: Optional[dict[str, str]] = None


@dataclass
class ModifierMatch:
    kind: ModifierKind
    strength: float


def detect_instruction(text: str) -> Optional[InstructionMatch]:
    for pattern in INSTRUCTION_PATTERNS:
        m = pattern.match(text)
        if m:
            modifiers = [kind for cue, kind in INLINE_MODIFIERS if cue.search(text)]
            return InstructionMatch(directive=m.group(1).lower(), subject=m.group(2).strip(), modifiers=modifiers)
    return None


def detect_constraint(text: str) -> Optional[ConstraintMatch]:
    m = LENGTH_CONSTRAINT.search(text)
    if m:
        return ConstraintMatch(
            kind=ConstraintKind.LENGTH,
            value=f"{m.group(2)} {m.group(3)}",
            strict=LENGTH_INTENSIFIER.search(text) is not None,
        )
    m = FORMAT_CONSTRAINT.search(text)
    if m:
        return ConstraintMatch(kind=ConstraintKind.FORMAT, value=m.group(3), strict=True)
    m = STYLE_CONSTRAINT.search(text)
    if m:
        return ConstraintMatch(kind=ConstraintKind.STYLE, value=m.group(3).strip(), strict=False)
    m = TONE_CONSTRAINT.search(text)
    if m:
        return ConstraintMatch(
            kind=ConstraintKind.TONE,
            value=m.group(3),
            strict=TONE_INTENSIFIER.search(text) is not None,
        )
    return None


def parse_schema_hints(text: str) -> dict[str, str]:
    """'name, age: number' -> {'name': 'string', 'age': 'number'}"""
    schema: dict[str, str] = {}
    for part in re.split(r"[,;]\s*", text):
        m = SCHEMA_FIELD.search(part)
        if m:
            schema[m.group(1)] = m.group(2) or "string"
    return schema


def detect_output_format(text: str) -> Optional[FormatMatch]:
    if JSON_CUE.search(text):
        hint = JSON_SCHEMA_HINT.search(text)
        return FormatMatch(FormatKind.JSON, parse_schema_hints(hint.group(1)) if hint else None)
    if MARKDOWN_CUE.search(text):
        return FormatMatch(FormatKind.MARKDOWN)
    if CODE_CUE.search(text) or CODE_LANGUAGE.search(text):
        lang = CODE_LANGUAGE.search(text)
        return FormatMatch(FormatKind.CODE, {"language": lang.group(1)} if lang else None)
    if LIST_CUE.search(text):
        return FormatMatch(FormatKind.LIST)
    return None


def detect_conditional(text: str) -> bool:
    return CONDITIONAL_LEADING.match(text) is not None or CONDITIONAL_EMBEDDED.search(text) is not None


def extract_modifiers(text: str) -> list[ModifierMatch]:
    """Modifiers found anywhere in the prompt. Graded cues may both fire."""
    return [ModifierMatch(kind, strength) for cue, kind, strength in GLOBAL_MODIFIERS if cue.search(text)]


def context_priority(text: str, index: int, total: int) -> int:
    priority = DEFAULT_PRIORITY
    optional = OPTIONAL_WORDS.search(text) is not None

    if IMPORTANCE_WORDS.search(text):
        priority += 2
    # "optional background" is still optional
    if BACKGROUND_WORDS.search(text) and not optional:
        priority += 1
    if index == 0:
        priority += 1
    if len(text) > 200:
        priority += 1

    if optional:
        priority -= 2
    if EXAMPLE_WORDS.search(text):
        priority -= 1
    if index == total - 1 and len(text) < 50:
        priority -= 1

    return max(0, min(MAX_PRIORITY, priority))


def context_required(text: str) -> bool:
    return NECESSITY_WORDS.search(text) is not None


def context_scope(text: str, index: int) -> ContextScope:
    if GLOBAL_WORDS.search(text) or index == 0:
        return ContextScope.GLOBAL
    return ContextScope.LOCAL
