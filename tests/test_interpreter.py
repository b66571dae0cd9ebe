"""
Interpreter Tests for the MIPS Simulator.

Each test assembles a short program, steps it to completion and checks
registers, memory, output and the stop reason.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from mips_sim.assembler import assemble
from mips_sim.config import DATA_BASE, PRINT_STRING_CAP, STACK_BASE, TEXT_BASE
from mips_sim.cpu.decoder import Opcode
from mips_sim.cpu.regs import RA
from mips_sim.emu import Interpreter, RuntimeFault, step
from mips_sim.machine import MachineState, StopReason
from mips_sim.program import EMPTY_PROGRAM
from mips_sim.samples import FIBONACCI


def run(source: str, limit: int = 10_000) -> MachineState:
    """Step a program until it halts. Faults stay on the returned state."""
    program = assemble(source)
    interp = Interpreter(program)
    state = MachineState.fresh(program)
    for _ in range(limit):
        if state.halted:
            break
        try:
            interp.step(state)
        except RuntimeFault:
            pass
    return state


def reg(state: MachineState, name: str) -> int:
    return state.regs.by_name(name)


def fib_reference(count: int) -> str:
    a, b = 0, 1
    terms = []
    for _ in range(count):
        a, b = b, a + b
        terms.append(str(a))
    return "Fibonacci Sequence: 0, " + ", ".join(terms) + "\n"


class TestDispatch:
    def test_every_opcode_has_a_handler(self):
        interp = Interpreter(EMPTY_PROGRAM)
        assert set(interp._dispatch) == set(Opcode)

    def test_step_function(self):
        program = assemble("li $t0, 9")
        state = step(MachineState.fresh(program), program)
        assert reg(state, "$t0") == 9
        assert state.pc == TEXT_BASE + 4


class TestArithmetic:
    def test_add_sub(self):
        state = run("li $t0, 7\nli $t1, 10\nadd $t2, $t0, $t1\nsub $t3, $t0, $t1")
        assert reg(state, "$t2") == 17
        assert reg(state, "$t3") == -3

    def test_addi_wraps(self):
        state = run("li $t0, 2147483647\naddi $t0, $t0, 1")
        assert reg(state, "$t0") == -2147483648

    def test_zero_register_discards_writes(self):
        state = run("addi $zero, $zero, 5\nmove $t0, $zero")
        assert state.regs[0] == 0
        assert reg(state, "$t0") == 0

    def test_logic_and_compare(self):
        state = run("""
            li $t0, 12
            li $t1, 10
            and $s0, $t0, $t1
            or  $s1, $t0, $t1
            xor $s2, $t0, $t1
            slt $s3, $t1, $t0
            slti $s4, $t0, -1
        """)
        assert [reg(state, r) for r in ("$s0", "$s1", "$s2", "$s3", "$s4")] == [8, 14, 6, 1, 0]

    def test_mul_and_shifts(self):
        state = run("li $t0, -6\nli $t1, 7\nmul $t2, $t0, $t1\nsll $t3, $t1, 4\nsrl $t4, $t0, 28")
        assert reg(state, "$t2") == -42
        assert reg(state, "$t3") == 112
        assert reg(state, "$t4") == 0xF

    def test_lui(self):
        state = run("lui $t0, 4097")
        assert reg(state, "$t0") == 0x10010000

    def test_case_insensitive_and_numeric_registers(self):
        state = run("LI $8, 3\nAddi $T1, $t0, 1")
        assert reg(state, "$t0") == 3
        assert reg(state, "$t1") == 4

    def test_la_loads_label_address(self):
        state = run(".data\nmsg: .asciiz \"x\"\n.text\nla $a0, msg")
        assert reg(state, "$a0") == DATA_BASE

    def test_directive_in_text_runs_as_noop(self):
        state = run(".align 2\nli $t0, 1")
        assert state.stop_reason is StopReason.END
        assert reg(state, "$t0") == 1
        assert state.steps == 2

    def test_unknown_mnemonic_is_noop(self):
        state = run("nop\nli $t0, 1")
        assert state.stop_reason is StopReason.END
        assert reg(state, "$t0") == 1
        assert state.steps == 2


class TestMemoryAccess:
    def test_store_and_load_word(self):
        state = run("li $t0, 258\nsw $t0, -4($sp)\nlw $t1, -4($sp)")
        assert reg(state, "$t1") == 258
        assert state.mem.read8(STACK_BASE - 2) == 1
        assert state.mem.read8(STACK_BASE - 1) == 2

    def test_lb_sign_extends(self):
        state = run(".data\nb: .byte 200\n.text\nla $t1, b\nlb $t0, 0($t1)")
        assert reg(state, "$t0") == -56

    def test_sb_stores_low_byte(self):
        state = run(".data\nbuf: .space 4\n.text\nla $t1, buf\nli $t0, 511\nsb $t0, 1($t1)")
        assert state.mem.read8(DATA_BASE + 1) == 0xFF
        assert state.mem.read8(DATA_BASE) == 0

    def test_bare_base_register(self):
        state = run(".data\nw: .word -7\n.text\nla $a1, w\nlw $t0, ($a1)")
        assert reg(state, "$t0") == -7


class TestControlFlow:
    def test_bne_loop(self):
        state = run("""
            li $t0, 5
            li $t1, 0
        top:
            addi $t1, $t1, 2
            addi $t0, $t0, -1
            bne $t0, $zero, top
        """)
        assert reg(state, "$t1") == 10
        assert state.stop_reason is StopReason.END

    def test_jal_and_jr(self):
        state = run("""
        main:   jal f
                li $v0, 10
                syscall
        f:      li $a0, 7
                li $v0, 1
                syscall
                jr $ra
        """)
        assert state.output == "7"
        assert state.stop_reason is StopReason.EXIT
        assert state.regs[RA] == TEXT_BASE + 4

    def test_branch_target_checked_when_not_taken(self):
        state = run("li $t0, 1\nbeq $zero, $t0, nowhere")
        assert state.stop_reason is StopReason.FAULT

    def test_unaligned_jump_faults(self):
        state = run("li $t0, 4194305\njr $t0")
        assert state.stop_reason is StopReason.FAULT
        assert "Unaligned" in state.error

    def test_running_off_the_end(self):
        state = run("li $t0, 1")
        assert state.stop_reason is StopReason.END
        assert state.fault is None
        assert state.pc == TEXT_BASE + 4

    def test_empty_program_ends_immediately(self):
        state = run("")
        assert state.stop_reason is StopReason.END
        assert state.steps == 0


class TestFaults:
    def test_unresolved_label(self):
        state = run("li $t0, 1\nj nowhere")
        assert state.stop_reason is StopReason.FAULT
        assert state.fault.pc == TEXT_BASE + 4
        assert "0x00400004" in state.error

    def test_fault_is_atomic(self):
        program = assemble("li $t0, 5\naddi $t0, $t0, missing")
        interp = Interpreter(program)
        state = MachineState.fresh(program)
        interp.step(state)
        with pytest.raises(RuntimeFault):
            interp.step(state)
        assert reg(state, "$t0") == 5
        assert state.pc == TEXT_BASE + 4
        assert state.steps == 1

    def test_steps_after_fault_are_noops(self):
        program = assemble("j nowhere\nli $t0, 1")
        interp = Interpreter(program)
        state = MachineState.fresh(program)
        with pytest.raises(RuntimeFault):
            interp.step(state)
        interp.step(state)
        interp.step(state)
        assert state.pc == TEXT_BASE
        assert state.steps == 0

    def test_wrong_operand_count(self):
        state = run("add $t0, $t1")
        assert state.stop_reason is StopReason.FAULT

    def test_bad_register(self):
        state = run("li $t99, 1")
        assert state.stop_reason is StopReason.FAULT
        assert "$t99" in state.error


class TestSyscalls:
    def test_print_int_negative(self):
        state = run("li $a0, -12\nli $v0, 1\nsyscall")
        assert state.output == "-12"

    def test_print_char(self):
        state = run("li $a0, 321\nli $v0, 11\nsyscall")
        assert state.output == "A"

    def test_print_string_is_capped(self):
        source = ('.data\ns: .asciiz "' + "A" * 1500 + '"\n'
                  '.text\nla $a0, s\nli $v0, 4\nsyscall\nli $v0, 10\nsyscall')
        state = run(source)
        assert state.output == "A" * PRINT_STRING_CAP
        assert state.stop_reason is StopReason.EXIT

    def test_exit_advances_pc(self):
        state = run("li $v0, 10\nsyscall\nli $t0, 1")
        assert state.stop_reason is StopReason.EXIT
        assert state.pc == TEXT_BASE + 8
        assert reg(state, "$t0") == 0

    def test_unknown_service_ignored(self):
        state = run("li $v0, 99\nsyscall\nli $t0, 1")
        assert state.stop_reason is StopReason.END
        assert state.output == ""
        assert reg(state, "$t0") == 1


class TestFibonacci:
    def test_demo_output(self):
        state = run(FIBONACCI)
        assert state.output == "Fibonacci Sequence: 0, 1, 1, 2, 3, 5, 8, 13, 21, 34, 55\n"
        assert state.stop_reason is StopReason.EXIT

    @pytest.mark.parametrize("count", [0, 1, 2, 5, 20])
    def test_count(self, count):
        source = FIBONACCI.replace("addi $t0, $zero, 10", f"addi $t0, $zero, {count}")
        assert run(source).output == fib_reference(count)


class TestMachineState:
    def test_copy_is_independent(self):
        state = run(".data\nv: .word 1\n.text\nli $t0, 3")
        clone = state.copy()
        clone.regs[8] = 99
        clone.mem.write8(DATA_BASE, 0xAA)
        assert reg(state, "$t0") == 3
        assert state.mem.read8(DATA_BASE) == 0
        assert clone.stop_reason is StopReason.END

    def test_reset_clears_memory(self):
        program = assemble(".data\nv: .byte 4\n.text\nla $t1, v\nsb $zero, 0($t1)")
        state = MachineState.fresh(program)
        interp = Interpreter(program)
        interp.step(state)
        interp.step(state)
        assert state.mem.read8(DATA_BASE) == 0
        state.reset(program)
        assert len(state.mem) == 0
        assert state.mem.read8(DATA_BASE) == 0
        assert state.pc == TEXT_BASE
        assert state.regs[29] == STACK_BASE
