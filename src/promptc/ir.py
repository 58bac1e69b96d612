"""IR (Intermediate Representation) definitions. The optimized AST lowers to a flat, JSON-serializable instruction list."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

IR_VERSION = "1.0"


class Opcode(Enum):
    PROMPT = "PROMPT"
    CONTEXT = "CONTEXT"
    CONSTRAINT = "CONSTRAINT"
    FORMAT = "FORMAT"
    # Reserved for control flow and caching; never emitted by lowering.
    BRANCH = "BRANCH"
    LOOP = "LOOP"
    CACHE = "CACHE"


# Opcodes whose operand text ends up in the generated prompt.
RENDERED_OPCODES = (Opcode.PROMPT, Opcode.CONTEXT, Opcode.CONSTRAINT, Opcode.FORMAT)


@dataclass
class IROperand:
    kind: str  # "constant"
    value: Any = None


@dataclass
class IRCost:
    tokens: int = 0
    estimated_ms: int = 0


@dataclass
class IRInstruction:
    id: str
    opcode: Opcode
    operands: list[IROperand] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    cost: IRCost = field(default_factory=IRCost)
    separator: Optional[str] = None  # whitespace emitted after this instruction

    @property
    def text(self) -> str:
        for op in self.operands:
            if op.kind == "constant" and op.value:
                return str(op.value)
        return ""


@dataclass
class IRParallelGroup:
    id: str
    instructions: list[str]
    estimated_speedup: float = 1.5  # heuristic, not measured


@dataclass
class IRMetadata:
    original_tokens: int = 0
    optimized_tokens: int = 0
    optimization_passes: list[str] = field(default_factory=list)
    parallel_groups: Optional[list[IRParallelGroup]] = None


@dataclass
class IRProgram:
    version: str = IR_VERSION
    instructions: list[IRInstruction] = field(default_factory=list)
    metadata: IRMetadata = field(default_factory=IRMetadata)

    def to_dict(self) -> dict:
        groups = self.metadata.parallel_groups
        return {
            "version": self.version,
            "instructions": [
                {
                    "id": i.id,
                    "opcode": i.opcode.value,
                    "operands": [{"type": o.kind, "value": o.value} for o in i.operands],
                    "dependencies": i.dependencies,
                    "cost": {"tokens": i.cost.tokens, "estimated_ms": i.cost.estimated_ms},
                    "separator": i.separator,
                }
                for i in self.instructions
            ],
            "metadata": {
                "original_tokens": self.metadata.original_tokens,
                "optimized_tokens": self.metadata.optimized_tokens,
                "optimization_passes": self.metadata.optimization_passes,
                "parallel_groups": None if groups is None else [
                    {"id": g.id, "instructions": g.instructions, "estimated_speedup": g.estimated_speedup}
                    for g in groups
                ],
            },
        }
