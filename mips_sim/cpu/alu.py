"""
MIPS Simulator - 32-bit ALU Operations

Registers hold Python ints normalised to the signed 32-bit range
(-2**31 .. 2**31-1). Every helper here takes signed or unsigned inputs
and returns a signed 32-bit result, so arithmetic wraps the way the
hardware does and never raises on overflow:

  add32(0x7FFFFFFF, 1)  -> -0x80000000  (bit pattern 0x80000000)
  mul32(a, b)           -> low 32 bits of the signed product

Shift amounts are masked to 5 bits, as in the real shifter.
"""

MASK32 = 0xFFFFFFFF
SIGN32 = 0x80000000


def u32(value: int) -> int:
    """Mask to unsigned 32 bits."""
    return value & MASK32


def s32(value: int) -> int:
    """Interpret the low 32 bits of value as signed."""
    value &= MASK32
    return value - (1 << 32) if value & SIGN32 else value


def sign_extend(value: int, bits: int) -> int:
    """Sign-extend a bits-wide value to a signed Python int."""
    mask = (1 << bits) - 1
    value &= mask
    if value & (1 << (bits - 1)):
        value -= (1 << bits)
    return value


# ══════════════════════════════════════════════
# Register-register operations
# ══════════════════════════════════════════════

def add32(a: int, b: int) -> int:
    return s32(a + b)


def sub32(a: int, b: int) -> int:
    return s32(a - b)


def mul32(a: int, b: int) -> int:
    """Low word of the signed product (no HI/LO registers)."""
    return s32(s32(a) * s32(b))


def and32(a: int, b: int) -> int:
    return s32(a & b)


def or32(a: int, b: int) -> int:
    return s32(a | b)


def xor32(a: int, b: int) -> int:
    return s32(a ^ b)


def slt(a: int, b: int) -> int:
    """Set-less-than, signed comparison."""
    return 1 if s32(a) < s32(b) else 0


# ══════════════════════════════════════════════
# Shifts / immediates
# ══════════════════════════════════════════════

def sll32(a: int, shamt: int) -> int:
    return s32(u32(a) << (shamt & 0x1F))


def srl32(a: int, shamt: int) -> int:
    """Logical right shift: zero-fill from the top."""
    return s32(u32(a) >> (shamt & 0x1F))


def lui32(imm: int) -> int:
    return s32(imm << 16)
