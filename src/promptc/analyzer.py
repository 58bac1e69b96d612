"""Semantic analysis: dependency map and parallelizable groups (metadata only)."""

from dataclasses import dataclass, field

from promptc.ast_nodes import Program


@dataclass
class Analysis:
    dependencies: dict[str, list[str]] = field(default_factory=dict)
    parallelizable: list[list[str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "dependencies": self.dependencies,
            "parallelizable": self.parallelizable,
            "warnings": self.warnings,
        }


def analyze(program: Program) -> Analysis:
    """Map node id -> dependencies; group the nodes that depend on nothing."""
    analysis = Analysis()
    for node in program.body:
        if hasattr(node, "dependencies"):
            analysis.dependencies[node.id] = list(node.dependencies or [])

    independent = [node_id for node_id, deps in analysis.dependencies.items() if not deps]
    if len(independent) > 1:
        analysis.parallelizable.append(independent)
    return analysis
