"""Code generation: IR -> prompt text."""

from promptc.ast_nodes import join_rendered
from promptc.ir import RENDERED_OPCODES, IRProgram


def generate(ir: IRProgram) -> str:
    """Join instruction text in IR order, keeping the whitespace each segment had in the prompt.

    No reordering, no deduplication. Instructions without a recorded separator
    are followed by a blank line.
    """
    return join_rendered([(i.text, i.separator) for i in ir.instructions if i.opcode in RENDERED_OPCODES])
