"""
MIPS Simulator - Opcode Table + Operand Decoding

The assembler stores instructions as raw text tokens; nothing is
validated until the instruction executes. This module turns a mnemonic
into an Opcode and each operand token into a value:

  register     $t0, $zero, $8           -> register index
  memory       -4($sp), 0($t1), ($a0)   -> (signed offset, base register)
  value        loop, msg, -12, 42       -> label address, else base-10 int

Unknown mnemonics map to None and execute as no-ops. Every other
decoding problem raises OperandError, which the interpreter reports as a
runtime fault at the instruction's PC.
"""

import re
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .regs import register_index


class OperandError(ValueError):
    """Operand token could not be decoded."""


class Opcode(Enum):
    # ── Arithmetic / logic, register-register ──
    ADD = 'add'
    ADDU = 'addu'
    SUB = 'sub'
    SUBU = 'subu'
    MUL = 'mul'
    AND = 'and'
    OR = 'or'
    XOR = 'xor'
    SLT = 'slt'

    # ── Immediate forms ──
    ADDI = 'addi'
    ADDIU = 'addiu'
    SLTI = 'slti'
    SLL = 'sll'
    SRL = 'srl'
    LUI = 'lui'

    # ── Pseudo-instructions ──
    LI = 'li'
    LA = 'la'
    MOVE = 'move'

    # ── Load / store ──
    LW = 'lw'
    SW = 'sw'
    LB = 'lb'
    SB = 'sb'

    # ── Control transfer ──
    BEQ = 'beq'
    BNE = 'bne'
    J = 'j'
    JAL = 'jal'
    JR = 'jr'

    SYSCALL = 'syscall'


OPERAND_COUNTS: Dict[Opcode, int] = {
    Opcode.ADD: 3, Opcode.ADDU: 3, Opcode.SUB: 3, Opcode.SUBU: 3,
    Opcode.MUL: 3, Opcode.AND: 3, Opcode.OR: 3, Opcode.XOR: 3,
    Opcode.SLT: 3,
    Opcode.ADDI: 3, Opcode.ADDIU: 3, Opcode.SLTI: 3,
    Opcode.SLL: 3, Opcode.SRL: 3,
    Opcode.LUI: 2, Opcode.LI: 2, Opcode.LA: 2, Opcode.MOVE: 2,
    Opcode.LW: 2, Opcode.SW: 2, Opcode.LB: 2, Opcode.SB: 2,
    Opcode.BEQ: 3, Opcode.BNE: 3,
    Opcode.J: 1, Opcode.JAL: 1, Opcode.JR: 1,
    Opcode.SYSCALL: 0,
}

_OPCODE_BY_MNEMONIC = {op.value: op for op in Opcode}

_INT_RE = re.compile(r'^[+-]?\d+$')
_MEM_RE = re.compile(r'^([+-]?\d*)\((\$\w+)\)$')


def lookup_opcode(mnemonic: str) -> Optional[Opcode]:
    """Mnemonic -> Opcode (case-insensitive), None if unrecognized."""
    return _OPCODE_BY_MNEMONIC.get(mnemonic.lower())


def check_arity(opcode: Opcode, operands: Sequence[str]):
    expected = OPERAND_COUNTS[opcode]
    if len(operands) != expected:
        raise OperandError(
            f"'{opcode.value}' expects {expected} operand(s), got {len(operands)}")


def decode_register(token: str) -> int:
    try:
        return register_index(token)
    except KeyError:
        raise OperandError(f"Unknown register: '{token}'") from None


def decode_memory(token: str) -> Tuple[int, int]:
    """Decode 'offset(reg)' into (signed offset, base register index)."""
    match = _MEM_RE.match(token.strip())
    if not match:
        raise OperandError(f"Malformed memory operand: '{token}'")
    offset_text, reg = match.groups()
    offset = int(offset_text) if offset_text not in ('', '+', '-') else 0
    return offset, decode_register(reg)


def parse_int(token: str) -> int:
    """Strict base-10 integer literal with optional sign."""
    token = token.strip()
    if not _INT_RE.match(token):
        raise OperandError(f"Not an integer literal: '{token}'")
    return int(token, 10)


def resolve_value(token: str, labels: Mapping[str, int]) -> int:
    """Label address if the token is a label, else a base-10 literal."""
    if token in labels:
        return labels[token]
    try:
        return parse_int(token)
    except OperandError:
        raise OperandError(f"Cannot resolve '{token}' as a label or integer") from None
