"""
MIPS Simulator - Sparse 4 GiB Memory

The address space is the full 32 bits, but a program only ever touches a
few hundred bytes, so memory is a dict keyed by address. Addresses that
were never written read as zero.

Word access is big-endian (most significant byte at the lowest address)
and is always built out of the byte primitives, so read32/write32 and
read8/write8 can never disagree about byte order:

  write32(A, 0x11223344)  ->  [A]=0x11 [A+1]=0x22 [A+2]=0x33 [A+3]=0x44

There is no bounds checking and no alignment check. Address arithmetic
wraps modulo 2**32.
"""

from typing import Dict, Iterator, List, Mapping, Optional, Tuple

MASK32 = 0xFFFFFFFF


def split_word(addr: int, value: int) -> List[Tuple[int, int]]:
    """Decompose a 32-bit word into big-endian (address, byte) pairs."""
    value &= MASK32
    return [
        ((addr + i) & MASK32, (value >> (24 - 8 * i)) & 0xFF)
        for i in range(4)
    ]


class Memory:
    """Byte-addressable sparse memory.

    Only bytes that have been written are stored. The defined bytes are
    what the memory view shows, so writing 0 still creates an entry.
    """

    def __init__(self, image: Optional[Mapping[int, int]] = None):
        self._mem: Dict[int, int] = {}
        if image:
            self.load_image(image)

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        return self._mem.get(addr & MASK32, 0)

    def write8(self, addr: int, value: int):
        self._mem[addr & MASK32] = value & 0xFF

    def read32(self, addr: int) -> int:
        """Read an unsigned 32-bit word (big-endian)."""
        value = 0
        for i in range(4):
            value = (value << 8) | self.read8(addr + i)
        return value

    def write32(self, addr: int, value: int):
        for byte_addr, byte in split_word(addr, value):
            self.write8(byte_addr, byte)

    # --- Bulk load ---

    def load_image(self, image: Mapping[int, int]):
        """Copy an {address: byte} image (the assembled .data segment)."""
        for addr, byte in image.items():
            self.write8(addr, byte)

    def clear(self):
        self._mem.clear()

    def copy(self) -> 'Memory':
        clone = Memory()
        clone._mem = dict(self._mem)
        return clone

    # --- Inspection ---

    def __len__(self) -> int:
        return len(self._mem)

    def __contains__(self, addr: int) -> bool:
        return (addr & MASK32) in self._mem

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._mem))

    def snapshot(self) -> Dict[int, int]:
        """Return a copy of every defined byte, {address: byte}."""
        return dict(sorted(self._mem.items()))

    @staticmethod
    def diff_snapshots(snap_a: Mapping[int, int],
                       snap_b: Mapping[int, int]) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changes."""
        changes = {}
        for addr in sorted(set(snap_a) | set(snap_b)):
            old = snap_a.get(addr, 0)
            new = snap_b.get(addr, 0)
            if old != new:
                changes[addr] = (old, new)
        return changes

    def ranges(self, gap: int = 16) -> List[Tuple[int, int]]:
        """Group defined addresses into (first, last) display ranges.

        A new range starts whenever the next defined byte is more than
        gap bytes past the previous one.
        """
        addrs = sorted(self._mem)
        if not addrs:
            return []
        result = []
        start = prev = addrs[0]
        for addr in addrs[1:]:
            if addr > prev + gap:
                result.append((start, prev))
                start = addr
            prev = addr
        result.append((start, prev))
        return result

    def hexdump(self, start: Optional[int] = None, length: int = 256) -> str:
        """Hex dump in 16-byte rows; never-written bytes show as '..'.

        With no start address, dumps every defined range instead.
        """
        if start is None:
            spans = [(first & ~0xF, (last | 0xF) + 1)
                     for first, last in self.ranges()]
        else:
            spans = [(start & ~0xF, start + length)]

        lines = []
        for row_start, row_end in spans:
            for addr in range(row_start, row_end, 16):
                cells = []
                for i in range(16):
                    a = (addr + i) & MASK32
                    cells.append(f'{self._mem[a]:02x}' if a in self._mem else '..')
                groups = '  '.join(' '.join(cells[g:g + 4]) for g in range(0, 16, 4))
                lines.append(f'0x{addr & MASK32:08x}  {groups}')
        return '\n'.join(lines)
