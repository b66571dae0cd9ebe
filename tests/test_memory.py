"""
Memory + Register File Tests

Covers the sparse memory model (byte/word composition, zero default,
address wrap) and the register file ($zero hardwiring, reset state).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from mips_sim.config import STACK_BASE
from mips_sim.cpu import alu
from mips_sim.cpu.regs import RegisterFile, register_index, SP, REGISTER_NAMES
from mips_sim.mem.memory import Memory, split_word


class TestMemory:
    def test_unset_reads_zero(self):
        mem = Memory()
        assert mem.read8(0x10010000) == 0
        assert mem.read32(0xDEADBEEC) == 0
        assert len(mem) == 0

    def test_write8_masks_to_byte(self):
        mem = Memory()
        mem.write8(0x100, 0x1FF)
        assert mem.read8(0x100) == 0xFF

    @pytest.mark.parametrize("addr,value", [
        (0x10010000, 0x11223344),
        (0x10010001, 0xFFFFFFFF),
        (0x7FFFFFFC, 0x80000000),
        (0x00000000, 0x00000000),
    ])
    def test_word_is_big_endian(self, addr, value):
        mem = Memory()
        mem.write32(addr, value)
        assert mem.read32(addr) == value
        assert [mem.read8(addr + i) for i in range(4)] == [
            (value >> 24) & 0xFF, (value >> 16) & 0xFF,
            (value >> 8) & 0xFF, value & 0xFF,
        ]

    def test_word_from_bytes(self):
        mem = Memory()
        for i, b in enumerate([0xCA, 0xFE, 0xBA, 0xBE]):
            mem.write8(0x2000 + i, b)
        assert mem.read32(0x2000) == 0xCAFEBABE

    def test_negative_word_stored_as_twos_complement(self):
        mem = Memory()
        mem.write32(0x40, -1)
        assert mem.read32(0x40) == 0xFFFFFFFF

    def test_address_wraps(self):
        mem = Memory()
        mem.write32(0xFFFFFFFE, 0xAABBCCDD)
        assert mem.read8(0xFFFFFFFE) == 0xAA
        assert mem.read8(0xFFFFFFFF) == 0xBB
        assert mem.read8(0x00000000) == 0xCC
        assert mem.read8(0x00000001) == 0xDD
        assert mem.read32(0xFFFFFFFE) == 0xAABBCCDD

    def test_split_word(self):
        assert split_word(0x10, 0x01020304) == [
            (0x10, 1), (0x11, 2), (0x12, 3), (0x13, 4)]

    def test_load_image_and_copy_are_independent(self):
        mem = Memory({0x10: 7})
        clone = mem.copy()
        clone.write8(0x10, 9)
        assert mem.read8(0x10) == 7
        assert clone.read8(0x10) == 9
        assert 0x10 in mem
        assert 0x11 not in mem
        assert len(mem) == 1

    def test_ranges_split_on_gap(self):
        mem = Memory()
        mem.write32(0x1000, 1)
        mem.write8(0x1008, 1)
        mem.write8(0x2000, 1)
        assert mem.ranges() == [(0x1000, 0x1008), (0x2000, 0x2000)]

    def test_hexdump_marks_unwritten(self):
        mem = Memory()
        mem.write8(0x10010001, 0x41)
        dump = mem.hexdump()
        assert dump.startswith("0x10010000  .. 41 .. ..")

    def test_diff_snapshots(self):
        mem = Memory()
        before = mem.snapshot()
        mem.write8(0x20, 5)
        assert Memory.diff_snapshots(before, mem.snapshot()) == {0x20: (0, 5)}


class TestRegisterFile:
    def test_reset_state(self):
        regs = RegisterFile()
        regs[8] = 123
        regs.reset()
        for idx, value in enumerate(regs.values()):
            if idx == SP:
                assert value == STACK_BASE
            else:
                assert value == 0

    def test_zero_is_hardwired(self):
        regs = RegisterFile()
        regs[0] = 42
        assert regs[0] == 0
        assert regs.values()[0] == 0

    def test_values_wrap_to_signed_32(self):
        regs = RegisterFile()
        regs[9] = 0xFFFFFFFF
        assert regs[9] == -1
        regs[9] = 0x80000000
        assert regs[9] == -0x80000000

    def test_out_of_range_index(self):
        with pytest.raises(IndexError):
            RegisterFile()[32] = 1

    def test_names(self):
        assert len(REGISTER_NAMES) == 32
        assert register_index('$t0') == 8
        assert register_index('$8') == 8
        assert register_index('$SP') == 29
        assert register_index('$ra') == 31
        with pytest.raises(KeyError):
            register_index('$t10')

    def test_display_lists_every_register(self):
        text = RegisterFile().display()
        for name in REGISTER_NAMES:
            assert name in text
        assert '7ffffffc' in text


class TestAlu:
    def test_add_wraps(self):
        assert alu.u32(alu.add32(0x7FFFFFFF, 1)) == 0x80000000

    def test_sub_wraps(self):
        assert alu.sub32(-0x80000000, 1) == 0x7FFFFFFF

    def test_mul_low_word(self):
        assert alu.mul32(0x10000, 0x10000) == 0
        assert alu.mul32(-3, 7) == -21
        assert alu.mul32(0x7FFFFFFF, 2) == -2

    def test_shifts(self):
        assert alu.sll32(1, 31) == -0x80000000
        assert alu.srl32(-1, 28) == 0xF
        assert alu.srl32(-0x80000000, 31) == 1
        assert alu.sll32(1, 32) == 1  # shift amount is 5 bits

    def test_slt_signed(self):
        assert alu.slt(-1, 0) == 1
        assert alu.slt(0, -1) == 0
        assert alu.slt(5, 5) == 0

    def test_sign_extend(self):
        assert alu.sign_extend(0x80, 8) == -128
        assert alu.sign_extend(0x7F, 8) == 127

    def test_lui(self):
        assert alu.lui32(0x1001) == 0x10010000
        assert alu.u32(alu.lui32(0xFFFF)) == 0xFFFF0000
