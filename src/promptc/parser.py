"""Prompt parser: segments -> detectors -> Program AST. One node per segment."""

from promptc import patterns
from promptc.ast_nodes import (
    Constraint,
    Context,
    ContextScope,
    Instruction,
    Literal,
    Modifier,
    NodeMetadata,
    OutputFormat,
    Program,
    Statement,
    estimate_tokens,
    literal_text,
)
from promptc.errors import ParseError
from promptc.log import ensure_logger, get_logger
from promptc.segmenter import Segment, segment
from promptc.variables import VariableScope

logger = get_logger(__name__)

# Leading words of a context that an instruction must mention to depend on it.
DEPENDENCY_KEYWORDS = 5
DEPENDENCY_MIN_WORD_LEN = 4


class Parser:
    def __init__(self, prompt: str, log=None):
        if not isinstance(prompt, str):
            raise ParseError(f"prompt must be a string, got {type(prompt).__name__}")
        self.text = prompt.strip()
        self.logger = ensure_logger(log, logger)
        self.scope = VariableScope()
        self.body: list[Statement] = []

    def parse_program(self) -> Program:
        segments = segment(self.text)
        for index, seg in enumerate(segments):
            self.body.append(self.parse_segment(seg, index, len(segments)))

        self.apply_global_modifiers()
        dependencies = self.structural_dependencies()

        self.logger.debug(
            "Prompt parsed to AST",
            node_count=len(self.body),
            instructions=sum(isinstance(n, Instruction) for n in self.body),
            contexts=sum(isinstance(n, Context) for n in self.body),
            constraints=sum(isinstance(n, Constraint) for n in self.body),
            formats=sum(isinstance(n, OutputFormat) for n in self.body),
            dependencies=len(dependencies),
            variables=len(self.scope.values),
        )
        return Program(
            id="prog_0",
            body=self.body,
            dependencies=dependencies,
            metadata=NodeMetadata(
                start_offset=0,
                end_offset=len(self.text),
                token_estimate=estimate_tokens(self.text),
            ),
        )

    def parse_segment(self, seg: Segment, index: int, total: int) -> Statement:
        meta = NodeMetadata.for_text(seg.text, seg.start, seg.end, seg.separator)

        match = patterns.detect_instruction(seg.text)
        if match:
            return self.parse_instruction(match, index, meta)

        constraint = patterns.detect_constraint(seg.text)
        if constraint:
            return Constraint(
                id=f"constraint_{index}",
                kind=constraint.kind,
                value=Literal(id=f"lit_constraint_{index}", value=constraint.value, compressible=False),
                strict=constraint.strict,
                metadata=meta,
            )

        fmt = patterns.detect_output_format(seg.text)
        if fmt:
            return OutputFormat(id=f"format_{index}", format=fmt.format, schema=fmt.schema, metadata=meta)

        if patterns.detect_conditional(seg.text):
            # No branching yet: conditionals survive as required, high-priority context.
            return self.context(seg.text, index, meta, ContextScope.LOCAL, patterns.CONDITIONAL_PRIORITY, True)

        return self.context(
            seg.text,
            index,
            meta,
            patterns.context_scope(seg.text, index),
            patterns.context_priority(seg.text, index, total),
            patterns.context_required(seg.text),
        )

    def parse_instruction(self, match: patterns.InstructionMatch, index: int, meta: NodeMetadata) -> Instruction:
        resolution = self.scope.resolve_subject(match.subject, self.body, index)
        modifiers = [
            Modifier(id=f"mod_{index}_{i}", kind=kind, strength=patterns.INLINE_MODIFIER_STRENGTH)
            for i, kind in enumerate(match.modifiers)
        ]
        return Instruction(
            id=f"inst_{index}",
            directive=match.directive,
            subject=Literal(id=f"lit_inst_{index}", value=resolution.subject),
            modifiers=modifiers,
            dependencies=resolution.dependencies,
            variables=resolution.variables,
            metadata=meta,
        )

    def context(
        self,
        text: str,
        index: int,
        meta: NodeMetadata,
        scope: ContextScope,
        priority: int,
        required: bool,
    ) -> Context:
        return Context(
            id=f"ctx_{index}",
            scope=scope,
            content=Literal(id=f"lit_ctx_{index}", value=text),
            priority=priority,
            required=required,
            metadata=meta,
        )

    def apply_global_modifiers(self) -> None:
        """Modifiers found anywhere in the prompt apply to every instruction."""
        found = patterns.extract_modifiers(self.text)
        if not found:
            return
        for node in self.body:
            if isinstance(node, Instruction):
                index = node.id.split("_", 1)[1]
                node.modifiers = node.modifiers + [
                    Modifier(id=f"mod_{index}_g{j}", kind=m.kind, strength=m.strength)
                    for j, m in enumerate(found)
                ]

    def structural_dependencies(self) -> list[str]:
        deps: list[str] = []
        for i, node in enumerate(self.body):
            if not isinstance(node, Instruction):
                continue
            subject = literal_text(node.subject).lower()
            for prev in self.body[:i]:
                if not isinstance(prev, Context) or prev.id in deps:
                    continue
                keywords = literal_text(prev.content).split()[:DEPENDENCY_KEYWORDS]
                if any(len(k) >= DEPENDENCY_MIN_WORD_LEN and k.lower() in subject for k in keywords):
                    deps.append(prev.id)
        return deps


def parse(prompt: str, log=None) -> Program:
    """Parse a prompt into a Program AST."""
    return Parser(prompt, log).parse_program()
