"""Variable resolver: declared and implicit variables across one parse.

A ``VariableScope`` is created per parse and passed explicitly through the
parser. It only ever grows: the first declaration of a name wins.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from promptc.ast_nodes import Context, Instruction, Statement, literal_text
from promptc.log import get_logger

logger = get_logger(__name__)

_NAME = r"[a-zA-Z_][a-zA-Z0-9_]*"
_VALUE_END = r"(?:\.|$|,)"

DECLARATION_PATTERNS = (
    re.compile(rf"\blet\s+({_NAME})\s+(?:be|is|=)\s+(.+?){_VALUE_END}", re.IGNORECASE),
    re.compile(rf"\b([A-Z][a-zA-Z0-9_]*)\s+is\s+(.+?){_VALUE_END}"),
    re.compile(rf"\bdefine\s+({_NAME})\s+as\s+(.+?){_VALUE_END}", re.IGNORECASE),
)
COLON_DECLARATION = re.compile(rf"\b({_NAME})\s*:\s*(.+?)(?:\.|$|,|\n)")
TYPE_HINT = re.compile(r"^(string|number|boolean|object|array)$", re.IGNORECASE)

REFERENCE_PATTERNS = (
    re.compile(r"\$\{([a-zA-Z0-9_]+)\}"),
    re.compile(r"\$([a-zA-Z0-9_]+)\b"),
    re.compile(r"\{\{([a-zA-Z0-9_]+)\}\}"),
    re.compile(r"\b([A-Z][a-zA-Z0-9_]*)\b"),
)

IMPLICIT_REFERENCE = re.compile(r"\b(?:of|about|for|from|regarding|concerning)\s+([A-Z][a-zA-Z0-9_]*)\b")
QUOTED_REFERENCE = re.compile(r"[\"']([A-Z][a-zA-Z0-9_]+)[\"']")

MIN_NAME_LEN = 3
# A context mentioning the name within its first words is taken as defining it.
MENTION_WINDOW = 10

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must", "can", "this",
    "that", "these", "those", "it", "its", "they", "them", "their",
    "what", "which", "who", "when", "where", "why", "how", "all", "each",
    "every", "some", "any", "no", "not", "more", "most", "many", "much",
    "few", "little", "other", "another", "such", "only", "just", "also",
    "very", "too", "so", "than", "then", "there", "here", "now",
})


def is_stop_word(word: str) -> bool:
    return word.lower() in STOP_WORDS


def extract_declarations(text: str) -> list[tuple[str, str]]:
    """(name, value) pairs in pattern order; names lower-cased."""
    found: list[tuple[str, str]] = []
    for pattern in DECLARATION_PATTERNS:
        for m in pattern.finditer(text):
            found.append((m.group(1).lower(), m.group(2).strip()))
    for m in COLON_DECLARATION.finditer(text):
        value = m.group(2).strip()
        if len(value) > 3 and not TYPE_HINT.match(value):
            found.append((m.group(1).lower(), value))
    return found


def extract_implicit(text: str) -> list[str]:
    names: list[str] = []
    for m in IMPLICIT_REFERENCE.finditer(text):
        name = m.group(1).lower()
        if not is_stop_word(name) and len(name) >= MIN_NAME_LEN:
            names.append(name)
    for m in QUOTED_REFERENCE.finditer(text):
        name = m.group(1).lower()
        if not is_stop_word(name):
            names.append(name)
    return names


def _definition_patterns(name: str) -> list[re.Pattern]:
    n = re.escape(name)
    return [
        re.compile(rf"\b{n}\s+(?:is|be|equals?|=\s*)(.+?){_VALUE_END}", re.IGNORECASE),
        re.compile(rf"\b(?:let|define)\s+{n}\s+(?:be|as|is|=)\s+(.+?){_VALUE_END}", re.IGNORECASE),
        re.compile(rf"\b{n}\s*:\s*(.+?)(?:\.|$|,|\n)", re.IGNORECASE),
    ]


def find_in_context(name: str, body: list[Statement]) -> Optional[tuple[str, str]]:
    """Search earlier statements, newest first. Returns (value, node id) or None."""
    for node in reversed(body):
        if isinstance(node, Context):
            text = literal_text(node.content)
            for pattern in _definition_patterns(name):
                m = pattern.search(text)
                if m and m.group(1).strip():
                    value = m.group(1).strip()
                    logger.debug("Variable found in context", variable=name, found_in=node.id, value=value[:50])
                    return value, node.id
            words = text.lower().split()
            idx = next((i for i, w in enumerate(words) if name in w), -1)
            if 0 <= idx < MENTION_WINDOW:
                window = " ".join(words[max(0, idx - 2):idx + MENTION_WINDOW])
                if len(window) > len(name) + 5:
                    return window, node.id
        elif isinstance(node, Instruction):
            text = literal_text(node.subject)
            m = _definition_patterns(name)[1].search(text)
            if m and m.group(1).strip():
                return m.group(1).strip(), node.id
    return None


@dataclass
class Resolution:
    subject: str
    variables: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)


@dataclass
class VariableScope:
    """Name -> value table shared by every instruction of one parse."""
    values: dict[str, str] = field(default_factory=dict)
    placeholders: set[str] = field(default_factory=set)

    def declare(self, name: str, value: str) -> bool:
        if name in self.values or name in self.placeholders:
            return False
        self.values[name] = value
        return True

    def lookup(self, name: str) -> Optional[str]:
        return self.values.get(name)

    def placeholder(self, name: str) -> str:
        self.placeholders.add(name)
        return f"[{name}]"

    def resolve_subject(self, subject: str, body: list[Statement], index: int) -> Resolution:
        """Declare, substitute and infer variables for one instruction subject.

        ``body`` holds the statements parsed so far; only they are searched when
        a referenced name is unknown.
        """
        declarations = extract_declarations(subject)
        for name, value in declarations:
            if self.declare(name, value):
                logger.debug("Variable declared in instruction", variable=name, value=value[:50], instruction_index=index)

        detected: list[str] = []
        dependencies: list[str] = []
        for pattern in REFERENCE_PATTERNS:
            for m in list(pattern.finditer(subject)):
                name = m.group(1).lower()
                if len(name) < MIN_NAME_LEN or is_stop_word(name):
                    continue
                if name not in detected:
                    detected.append(name)
                value = self.lookup(name)
                if value is None and name not in self.placeholders:
                    found = find_in_context(name, body)
                    if found:
                        value, source_id = found
                        self.declare(name, value)
                        if source_id not in dependencies:
                            dependencies.append(source_id)
                if value is not None:
                    subject = subject.replace(m.group(0), value, 1)

        for name in extract_implicit(subject):
            if name in self.values or name in self.placeholders:
                continue
            found = find_in_context(name, body)
            if found:
                self.declare(name, found[0])
                if found[1] not in dependencies:
                    dependencies.append(found[1])
            else:
                self.placeholder(name)

        resolved = [n for n in detected if n in self.values]
        logger.debug(
            "Variable processing complete",
            instruction_index=index,
            declared=len(declarations),
            detected=len(detected),
            resolved=len(resolved),
            subject_length=len(subject),
        )
        return Resolution(subject=subject, variables=resolved, dependencies=dependencies)
