"""
MIPS Simulator - Assembled Program

A Program is the single output of assembly: the instruction list, the
label table, the initial .data image and the PC -> source line map.
It is frozen once built. The tables are wrapped in read-only mapping
proxies over private copies, so nothing the assembler keeps afterwards
can change a loaded program.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .config import TEXT_BASE


@dataclass(frozen=True)
class Instruction:
    """One text-segment line: mnemonic plus raw operand tokens."""
    address: int
    mnemonic: str
    operands: Tuple[str, ...]
    source_line: int
    text: str = ""

    def __str__(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {', '.join(self.operands)}"
        return self.mnemonic


@dataclass(frozen=True)
class Program:
    instructions: Tuple[Instruction, ...] = ()
    labels: Mapping[str, int] = field(default_factory=dict)
    data: Mapping[int, int] = field(default_factory=dict)
    entry: int = TEXT_BASE

    def __post_init__(self):
        object.__setattr__(self, 'instructions', tuple(self.instructions))
        object.__setattr__(self, 'labels', MappingProxyType(dict(self.labels)))
        object.__setattr__(self, 'data', MappingProxyType(dict(self.data)))
        by_addr = {inst.address: inst for inst in self.instructions}
        object.__setattr__(self, '_by_addr', by_addr)
        object.__setattr__(self, 'source_map', MappingProxyType(
            {inst.address: inst.source_line for inst in self.instructions}))

    def instruction_at(self, pc: int) -> Optional[Instruction]:
        return self._by_addr.get(pc)

    def source_line(self, pc: int) -> Optional[int]:
        return self.source_map.get(pc)

    def __len__(self) -> int:
        return len(self.instructions)


EMPTY_PROGRAM = Program()
