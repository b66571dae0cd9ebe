"""
MIPS Simulator - Register File

Register model (O32 naming convention):
  $0        $zero  hardwired to 0, writes are discarded
  $1        $at    assembler temporary
  $2-$3     $v0-$v1  results; $v0 selects the syscall service
  $4-$7     $a0-$a3  arguments; $a0 is the syscall argument
  $8-$15    $t0-$t7  temporaries
  $16-$23   $s0-$s7  saved
  $24-$25   $t8-$t9
  $26-$27   $k0-$k1
  $28       $gp
  $29       $sp    set to STACK_BASE on reset
  $30       $fp
  $31       $ra    link register for jal

Values are stored as signed 32-bit ints. The program counter lives on
the machine state, not here.
"""

from typing import Iterator, List

from ..config import STACK_BASE
from .alu import s32

REGISTER_NAMES = [
    '$zero', '$at', '$v0', '$v1', '$a0', '$a1', '$a2', '$a3',
    '$t0', '$t1', '$t2', '$t3', '$t4', '$t5', '$t6', '$t7',
    '$s0', '$s1', '$s2', '$s3', '$s4', '$s5', '$s6', '$s7',
    '$t8', '$t9', '$k0', '$k1', '$gp', '$sp', '$fp', '$ra',
]

REG_MAP = {name: idx for idx, name in enumerate(REGISTER_NAMES)}
REG_MAP.update({f'${idx}': idx for idx in range(32)})

NUM_REGS = 32

ZERO = 0
V0 = 2
A0 = 4
SP = 29
RA = 31


def register_index(token: str) -> int:
    """Map '$t0' / '$8' to 8. Raises KeyError for anything else."""
    return REG_MAP[token.strip().lower()]


class RegisterFile:
    """32 general-purpose registers with $zero hardwired to 0."""

    __slots__ = ('_regs',)

    def __init__(self):
        self._regs: List[int] = [0] * NUM_REGS
        self._regs[SP] = STACK_BASE

    def __getitem__(self, idx: int) -> int:
        if idx == ZERO:
            return 0
        return self._regs[idx]

    def __setitem__(self, idx: int, value: int):
        if not 0 <= idx < NUM_REGS:
            raise IndexError(f"Register index out of range: {idx}")
        if idx == ZERO:
            return
        self._regs[idx] = s32(value)

    def __len__(self) -> int:
        return NUM_REGS

    def __iter__(self) -> Iterator[int]:
        return iter(self.values())

    def values(self) -> List[int]:
        """Observable register values ($zero always reads 0)."""
        vals = list(self._regs)
        vals[ZERO] = 0
        return vals

    def by_name(self, name: str) -> int:
        return self[register_index(name)]

    def copy(self) -> 'RegisterFile':
        clone = RegisterFile()
        clone._regs = list(self._regs)
        return clone

    def reset(self):
        """Zero everything, then point $sp at the stack base."""
        self._regs = [0] * NUM_REGS
        self._regs[SP] = STACK_BASE

    def display(self) -> str:
        """Two-column name/hex table for debugging."""
        rows = []
        vals = self.values()
        for i in range(0, NUM_REGS, 2):
            left = f'{REGISTER_NAMES[i]:>5} {vals[i] & 0xFFFFFFFF:08x}'
            right = f'{REGISTER_NAMES[i + 1]:>5} {vals[i + 1] & 0xFFFFFFFF:08x}'
            rows.append(f'{left}   {right}')
        return '\n'.join(rows)
