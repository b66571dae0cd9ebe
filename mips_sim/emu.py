"""
MIPS Simulator - Interpreter

Executes one instruction per call against a MachineState.

Execution model:
  1. Fetch the Instruction whose address equals PC
     (none -> stop with END, not a fault)
  2. Decode mnemonic -> Opcode (unknown -> no-op), check operand count
  3. Run the handler, which reads the current state and records its
     writes in an Effects object
  4. Commit the Effects in one go: registers, memory, output, PC

Nothing touches the state before step 4, so an instruction either
completes or leaves the state exactly as it was. Any exception raised in
steps 2-3 becomes a RuntimeFault tagged with the faulting PC, and the
machine stops with FAULT until reset or reassembly.

Branches and jumps take ABSOLUTE targets: the label's address (or a
literal) becomes the new PC directly. There is no PC-relative offset
encoding and no delay slot.

Syscalls ($v0 = service, $a0 = argument):
  1   print_int     signed decimal of $a0
  4   print_string  NUL-terminated string at $a0, capped at
                    PRINT_STRING_CAP bytes (silent truncation)
  10  exit          stop with EXIT
  11  print_char    low byte of $a0
  other codes are ignored.
"""

import logging
from typing import Callable, Dict, Sequence

from .config import PRINT_STRING_CAP, WORD_SIZE
from .cpu import alu
from .cpu.decoder import (
    Opcode, OperandError, check_arity, decode_memory, decode_register,
    lookup_opcode, resolve_value,
)
from .cpu.regs import A0, RA, V0
from .machine import Effects, MachineState, StopReason
from .mem.memory import split_word
from .program import Instruction, Program

logger = logging.getLogger(__name__)

Handler = Callable[[MachineState, Instruction, Sequence[str], Effects], None]


class RuntimeFault(Exception):
    """Instruction could not be executed."""
    def __init__(self, pc: int, message: str):
        self.pc = pc
        self.message = message
        super().__init__(f"Runtime error at PC 0x{pc:08x}: {message}")


class Interpreter:
    """Fetch/decode/execute for one Program.

    Usage:
        interp = Interpreter(program)
        state = MachineState.fresh(program)
        while not state.halted:
            interp.step(state)
        print(state.output)
    """

    def __init__(self, program: Program):
        self.program = program
        self._dispatch: Dict[Opcode, Handler] = self._build_dispatch()
        self._syscalls: Dict[int, Callable[[MachineState, Effects], None]] = {
            1: self._sys_print_int,
            4: self._sys_print_string,
            10: self._sys_exit,
            11: self._sys_print_char,
        }

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self, state: MachineState) -> MachineState:
        """Execute the instruction at state.pc.

        No-op once the state is halted. Raises RuntimeFault (after
        recording it on the state) if the instruction cannot execute.
        """
        if state.halted:
            return state

        pc = state.pc
        inst = self.program.instruction_at(pc)
        if inst is None:
            logger.debug("No instruction at 0x%08x, stopping", pc)
            state.stop_reason = StopReason.END
            return state

        try:
            fx = self._execute(state, inst)
        except Exception as e:
            fault = RuntimeFault(pc, str(e) or type(e).__name__)
            state.set_fault(fault)
            raise fault from e

        logger.debug("0x%08x: %s", pc, inst)
        state.commit(fx)
        return state

    def _execute(self, state: MachineState, inst: Instruction) -> Effects:
        fx = Effects(next_pc=alu.u32(inst.address + WORD_SIZE))
        opcode = lookup_opcode(inst.mnemonic)
        if opcode is None:
            # Unknown mnemonics are tolerated and do nothing.
            return fx
        check_arity(opcode, inst.operands)
        self._dispatch[opcode](state, inst, inst.operands, fx)
        return fx

    # ══════════════════════════════════════════════
    # Operand helpers
    # ══════════════════════════════════════════════

    def _reg(self, state: MachineState, token: str) -> int:
        return state.regs[decode_register(token)]

    def _value(self, token: str) -> int:
        return resolve_value(token, self.program.labels)

    def _address(self, state: MachineState, token: str) -> int:
        offset, base = decode_memory(token)
        return alu.u32(state.regs[base] + offset)

    def _target(self, addr: int) -> int:
        addr = alu.u32(addr)
        if addr % WORD_SIZE:
            raise OperandError(f"Unaligned jump target 0x{addr:08x}")
        return addr

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(state, inst, ops, fx)

    def _build_dispatch(self) -> Dict[Opcode, Handler]:
        """Opcode -> handler. Every Opcode member has an entry."""
        return {
            # ── Register-register ──
            Opcode.ADD:  self._rtype(alu.add32),
            Opcode.ADDU: self._rtype(alu.add32),
            Opcode.SUB:  self._rtype(alu.sub32),
            Opcode.SUBU: self._rtype(alu.sub32),
            Opcode.MUL:  self._rtype(alu.mul32),
            Opcode.AND:  self._rtype(alu.and32),
            Opcode.OR:   self._rtype(alu.or32),
            Opcode.XOR:  self._rtype(alu.xor32),
            Opcode.SLT:  self._rtype(alu.slt),

            # ── Register-immediate ──
            Opcode.ADDI:  self._itype(alu.add32),
            Opcode.ADDIU: self._itype(alu.add32),
            Opcode.SLTI:  self._itype(alu.slt),
            Opcode.SLL:   self._itype(alu.sll32),
            Opcode.SRL:   self._itype(alu.srl32),
            Opcode.LUI:   self._op_lui,

            # ── Pseudo ──
            Opcode.LI:   self._op_li,
            Opcode.LA:   self._op_li,
            Opcode.MOVE: self._op_move,

            # ── Memory ──
            Opcode.LW: self._op_lw,
            Opcode.SW: self._op_sw,
            Opcode.LB: self._op_lb,
            Opcode.SB: self._op_sb,

            # ── Control transfer ──
            Opcode.BEQ: self._branch(lambda a, b: a == b),
            Opcode.BNE: self._branch(lambda a, b: a != b),
            Opcode.J:   self._op_j,
            Opcode.JAL: self._op_jal,
            Opcode.JR:  self._op_jr,

            Opcode.SYSCALL: self._op_syscall,
        }

    def _rtype(self, fn: Callable[[int, int], int]) -> Handler:
        """rd = fn(rs, rt)"""
        def handler(state, inst, ops, fx):
            fx.write_reg(decode_register(ops[0]),
                         fn(self._reg(state, ops[1]), self._reg(state, ops[2])))
        return handler

    def _itype(self, fn: Callable[[int, int], int]) -> Handler:
        """rt = fn(rs, imm)"""
        def handler(state, inst, ops, fx):
            fx.write_reg(decode_register(ops[0]),
                         fn(self._reg(state, ops[1]), self._value(ops[2])))
        return handler

    def _branch(self, taken: Callable[[int, int], bool]) -> Handler:
        def handler(state, inst, ops, fx):
            target = self._target(self._value(ops[2]))
            if taken(self._reg(state, ops[0]), self._reg(state, ops[1])):
                fx.next_pc = target
        return handler

    def _op_lui(self, state, inst, ops, fx):
        fx.write_reg(decode_register(ops[0]), alu.lui32(self._value(ops[1])))

    def _op_li(self, state, inst, ops, fx):
        # li and la: immediate, label address, or literal address
        fx.write_reg(decode_register(ops[0]), alu.s32(self._value(ops[1])))

    def _op_move(self, state, inst, ops, fx):
        fx.write_reg(decode_register(ops[0]), self._reg(state, ops[1]))

    def _op_lw(self, state, inst, ops, fx):
        addr = self._address(state, ops[1])
        fx.write_reg(decode_register(ops[0]), alu.s32(state.mem.read32(addr)))

    def _op_sw(self, state, inst, ops, fx):
        addr = self._address(state, ops[1])
        for byte_addr, byte in split_word(addr, self._reg(state, ops[0])):
            fx.write_byte(byte_addr, byte)

    def _op_lb(self, state, inst, ops, fx):
        addr = self._address(state, ops[1])
        fx.write_reg(decode_register(ops[0]), alu.sign_extend(state.mem.read8(addr), 8))

    def _op_sb(self, state, inst, ops, fx):
        addr = self._address(state, ops[1])
        fx.write_byte(addr, self._reg(state, ops[0]) & 0xFF)

    def _op_j(self, state, inst, ops, fx):
        fx.next_pc = self._target(self._value(ops[0]))

    def _op_jal(self, state, inst, ops, fx):
        fx.next_pc = self._target(self._value(ops[0]))
        fx.write_reg(RA, inst.address + WORD_SIZE)

    def _op_jr(self, state, inst, ops, fx):
        fx.next_pc = self._target(self._reg(state, ops[0]))

    # ══════════════════════════════════════════════
    # Syscalls
    # ══════════════════════════════════════════════

    def _op_syscall(self, state, inst, ops, fx):
        service = state.regs[V0]
        handler = self._syscalls.get(service)
        if handler is None:
            logger.debug("Ignoring unknown syscall service %d at 0x%08x",
                         service, inst.address)
            return
        handler(state, fx)

    def _sys_print_int(self, state: MachineState, fx: Effects):
        fx.output += str(state.regs[A0])

    def _sys_print_string(self, state: MachineState, fx: Effects):
        addr = alu.u32(state.regs[A0])
        chars = []
        for _ in range(PRINT_STRING_CAP):
            byte = state.mem.read8(addr)
            if byte == 0:
                break
            chars.append(chr(byte))
            addr = alu.u32(addr + 1)
        fx.output += ''.join(chars)

    def _sys_exit(self, state: MachineState, fx: Effects):
        fx.stop = StopReason.EXIT

    def _sys_print_char(self, state: MachineState, fx: Effects):
        fx.output += chr(state.regs[A0] & 0xFF)


def step(state: MachineState, program: Program) -> MachineState:
    """Execute one instruction of program against state."""
    return Interpreter(program).step(state)
