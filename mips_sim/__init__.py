"""
MIPS Simulator
==============
An educational simulator for a subset of the MIPS32 instruction set.

Architecture:
    ┌──────────┐    ┌───────────┐    ┌──────────┐    ┌─────────────┐
    │ .asm     │───>│ Assembler │───>│ Program  │───>│ Interpreter │
    │ source   │    │ (1 pass)  │    │ (frozen) │    │ (1 step)    │
    └──────────┘    └───────────┘    └──────────┘    └──────┬──────┘
                                                            │
                         ┌───────────┐    ┌──────────────┐  │
                         │ Simulator │───>│ MachineState │<─┘
                         │ (run/step)│    │ regs/mem/pc  │
                         └───────────┘    └──────────────┘

    - assembler.py:  text -> instructions + labels + .data image
    - emu.py:        fetch/decode/execute, syscalls, RuntimeFault
    - scheduler.py:  single-step, paced continuous run, cancellation
    - cpu/, mem/:    register file, 32-bit ALU, operand decoding, memory
"""

__version__ = "0.1.0"

from .assembler import Assembler, AssemblerError, assemble
from .config import DATA_BASE, DEFAULT_MAX_STEPS, STACK_BASE, TEXT_BASE
from .emu import Interpreter, RuntimeFault, step
from .machine import MachineState, StopReason
from .program import Instruction, Program
from .scheduler import Simulator


def run_source(source: str, *, max_steps: int = DEFAULT_MAX_STEPS) -> Simulator:
    """Assemble and run source to completion with no pacing.

    Returns the Simulator so callers can inspect state and output.
    Raises AssemblerError for bad source; runtime faults are left on
    sim.state.fault.
    """
    sim = Simulator(delay=0.0, max_steps=max_steps)
    sim.assemble(source)
    sim.run()
    return sim
