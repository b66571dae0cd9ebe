"""
MIPS Simulator - Machine State

Everything an executing program can change lives in one MachineState:
registers, PC, memory, the accumulated console output, and the stop
status. The interpreter mutates it only through commit(), which applies
one instruction's complete set of effects at once.

Stop reasons stored on the state (the machine will not step again until
reset or reassembly):
  EXIT   syscall 10
  END    PC has no instruction ("ran off the end")
  FAULT  runtime fault; the fault object is kept in state.fault

The scheduler adds its own reasons (BREAK, CANCELLED, TIMEOUT) when a run
loop stops without the machine itself stopping.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .config import TEXT_BASE
from .cpu.regs import RegisterFile
from .mem.memory import Memory
from .program import EMPTY_PROGRAM, Program

if TYPE_CHECKING:
    from .emu import RuntimeFault


class StopReason(Enum):
    EXIT = 'EXIT'
    END = 'END'
    FAULT = 'FAULT'
    BREAK = 'BREAK'
    CANCELLED = 'CANCELLED'
    TIMEOUT = 'TIMEOUT'


@dataclass
class Effects:
    """Pending changes from one instruction, applied all-or-nothing."""
    next_pc: int
    reg_writes: List[Tuple[int, int]] = field(default_factory=list)
    mem_writes: List[Tuple[int, int]] = field(default_factory=list)
    output: str = ""
    stop: Optional[StopReason] = None

    def write_reg(self, idx: int, value: int):
        self.reg_writes.append((idx, value))

    def write_byte(self, addr: int, value: int):
        self.mem_writes.append((addr, value))


@dataclass
class MachineState:
    regs: RegisterFile = field(default_factory=RegisterFile)
    pc: int = TEXT_BASE
    mem: Memory = field(default_factory=Memory)
    output: str = ""
    stop_reason: Optional[StopReason] = None
    fault: Optional['RuntimeFault'] = None
    steps: int = 0

    @classmethod
    def fresh(cls, program: Program = EMPTY_PROGRAM) -> 'MachineState':
        """Power-on state for a program: data image loaded, PC at entry."""
        return cls(pc=program.entry, mem=Memory(program.data))

    def reset(self, program: Program = EMPTY_PROGRAM):
        self.regs.reset()
        self.pc = program.entry
        self.mem.clear()
        self.output = ""
        self.stop_reason = None
        self.fault = None
        self.steps = 0

    @property
    def halted(self) -> bool:
        return self.stop_reason is not None

    @property
    def error(self) -> Optional[str]:
        return str(self.fault) if self.fault is not None else None

    def commit(self, fx: Effects):
        for idx, value in fx.reg_writes:
            self.regs[idx] = value
        for addr, byte in fx.mem_writes:
            self.mem.write8(addr, byte)
        self.output += fx.output
        self.pc = fx.next_pc
        self.stop_reason = fx.stop
        self.steps += 1

    def set_fault(self, fault: 'RuntimeFault'):
        self.fault = fault
        self.stop_reason = StopReason.FAULT

    def copy(self) -> 'MachineState':
        return MachineState(
            regs=self.regs.copy(),
            pc=self.pc,
            mem=self.mem.copy(),
            output=self.output,
            stop_reason=self.stop_reason,
            fault=self.fault,
            steps=self.steps,
        )

    def snapshot(self) -> Dict[str, object]:
        """Plain-data view for display layers."""
        return {
            'registers': self.regs.values(),
            'pc': self.pc,
            'memory': self.mem.snapshot(),
            'output': self.output,
            'stop_reason': self.stop_reason.value if self.stop_reason else None,
            'error': self.error,
            'steps': self.steps,
        }
