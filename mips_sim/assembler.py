"""
MIPS Assembler for the MIPS Simulator.

Turns line-oriented MIPS assembly text into a Program: the instruction
list, the label table, and the initial .data byte image.

Input format:
  # comment to end of line ('#' inside "..." does not start a comment)
  .data / .text            section switch (default .text)
  name:                    label, may be followed by content on the same line
  .asciiz "text"           bytes + terminating 0
  .ascii  "text"           bytes only
  .word   1, -2, 3         32-bit big-endian words
  .byte   1, 255           single bytes
  .space  16               zero-filled bytes
  .align 2 (other .data)   skipped, pointer unchanged
  add $t0, $t1, $t2        instruction: commas are whitespace
  .globl main (in .text)   recorded like any other text line

How the single pass works:
  Each section keeps its own address pointer (text from TEXT_BASE, data
  from DATA_BASE). A label binds to the pointer of the section it appears
  in. Instructions are NOT checked here. Mnemonics and operands are
  stored as raw tokens and only decoded when executed, so labels are
  never dereferenced during assembly and forward references need no
  second pass: the table is complete by the time anything runs.

Any error aborts the whole assembly with an AssemblerError carrying the
1-based line number. Nothing is returned in that case.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from .config import DATA_BASE, TEXT_BASE, WORD_SIZE
from .cpu.decoder import parse_int
from .mem.memory import split_word
from .program import Instruction, Program

__all__ = ['Assembler', 'AssemblerError', 'assemble']

logger = logging.getLogger(__name__)

TEXT = '.text'
DATA = '.data'

_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '0': '\0',
    '\\': '\\',
    '"': '"',
}


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


# ──────────────────────────────────────────────
# Line scanning helpers
# ──────────────────────────────────────────────

def _find_outside_string(text: str, target: str) -> int:
    """Index of the first target char not inside a "..." literal, or -1."""
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if escaped:
            escaped = False
        elif ch == '\\' and in_string:
            escaped = True
        elif ch == '"':
            in_string = not in_string
        elif ch == target and not in_string:
            return i
    return -1


def _strip_comment(line: str) -> str:
    pos = _find_outside_string(line, '#')
    return line if pos < 0 else line[:pos]


def _split_directive(text: str) -> Tuple[str, str]:
    parts = text.split(None, 1)
    return parts[0].lower(), (parts[1].strip() if len(parts) > 1 else "")


def _split_list(operand: str) -> List[str]:
    return [tok for tok in operand.replace(',', ' ').split()]


def _parse_string(operand: str) -> bytes:
    """Decode a double-quoted string literal into bytes."""
    first = operand.find('"')
    last = operand.rfind('"')
    if first != 0 or last <= first:
        raise ValueError(f"Expected quoted string, got: {operand}")
    if operand[last + 1:].strip():
        raise ValueError(f"Unexpected text after string: {operand[last + 1:].strip()}")

    body = operand[first + 1:last]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == '\\' and i + 1 < len(body) and body[i + 1] in _ESCAPES:
            ch = _ESCAPES[body[i + 1]]
            i += 2
        else:
            i += 1
        code = ord(ch)
        if code > 0xFF:
            raise ValueError(f"Character {ch!r} does not fit in a byte")
        out.append(code)
    return bytes(out)


# ──────────────────────────────────────────────
# Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Single-pass MIPS assembler.

    Usage:
        asm = Assembler()
        program = asm.assemble(source_text)
        print(asm.get_listing())
    """

    def __init__(self, text_base: int = TEXT_BASE, data_base: int = DATA_BASE):
        self.text_base = text_base
        self.data_base = data_base
        self._reset()

    def _reset(self):
        self.labels: Dict[str, int] = {}          # name -> address
        self.data: Dict[int, int] = {}            # address -> byte
        self.instructions: List[Instruction] = []
        self.section: str = TEXT
        self.text_ptr: int = self.text_base
        self.data_ptr: int = self.data_base
        self._data_lines: List[Tuple[int, int, str]] = []  # (addr, line_num, text)

    def assemble(self, source: str) -> Program:
        """Assemble source text into a Program.

        Raises AssemblerError on the first bad line.
        """
        self._reset()

        for line_num, raw in enumerate(source.split('\n'), 1):
            try:
                self._assemble_line(raw, line_num)
            except AssemblerError:
                raise
            except ValueError as e:
                raise AssemblerError(str(e), line_num, raw) from e

        program = Program(
            instructions=self.instructions,
            labels=self.labels,
            data=self.data,
            entry=self.text_base,
        )
        logger.info("Assembled %d instruction(s), %d label(s), %d data byte(s)",
                    len(self.instructions), len(self.labels), len(self.data))
        return program

    def _assemble_line(self, raw: str, line_num: int):
        text = _strip_comment(raw).strip()
        if not text:
            return

        if text.lower() in (TEXT, DATA):
            self.section = text.lower()
            return

        end = _find_outside_string(text, ':')
        if end >= 0:
            label = text[:end].strip()
            self._bind_label(label, line_num, raw)
            text = text[end + 1:].strip()
            if not text:
                return

        if self.section == DATA:
            self._data_line(text, line_num)
        else:
            self._text_line(text, line_num)

    def _bind_label(self, label: str, line_num: int, raw: str):
        if not label or any(ch.isspace() or ch == '"' for ch in label):
            raise AssemblerError(f"Invalid label: '{label}'", line_num, raw)
        if label in self.labels:
            raise AssemblerError(f"Duplicate label: {label}", line_num, raw)
        self.labels[label] = self.text_ptr if self.section == TEXT else self.data_ptr

    # ── .data ──

    def _data_line(self, text: str, line_num: int):
        directive, operand = _split_directive(text)
        start = self.data_ptr

        if directive in ('.asciiz', '.ascii'):
            data = _parse_string(operand)
            if directive == '.asciiz':
                data += b'\x00'
            self._emit(data)
        elif directive == '.word':
            values = _split_list(operand)
            if not values:
                raise ValueError(".word needs at least one value")
            for tok in values:
                for addr, byte in split_word(self.data_ptr, parse_int(tok)):
                    self.data[addr] = byte
                self.data_ptr += WORD_SIZE
        elif directive == '.byte':
            values = _split_list(operand)
            if not values:
                raise ValueError(".byte needs at least one value")
            self._emit(bytes(parse_int(tok) & 0xFF for tok in values))
        elif directive == '.space':
            count = parse_int(operand)
            if count < 0:
                raise ValueError(f".space size must not be negative: {count}")
            self._emit(bytes(count))
        else:
            logger.debug("Skipping data directive %s on line %d", directive, line_num)
            return

        self._data_lines.append((start, line_num, text))

    def _emit(self, data: bytes):
        for byte in data:
            self.data[self.data_ptr] = byte
            self.data_ptr += 1

    # ── .text ──

    def _text_line(self, text: str, line_num: int):
        tokens = text.replace(',', ' ').split()
        if not tokens:
            return
        self.instructions.append(Instruction(
            address=self.text_ptr,
            mnemonic=tokens[0],
            operands=tuple(tokens[1:]),
            source_line=line_num,
            text=text,
        ))
        self.text_ptr += WORD_SIZE

    # ── Listing ──

    def get_listing(self) -> str:
        """Return an address / source listing of the last assembly."""
        by_addr: Dict[int, List[str]] = {}
        for name, addr in self.labels.items():
            by_addr.setdefault(addr, []).append(name)

        lines = [f"{'ADDR':>10}  {'LINE':>4}  SOURCE", "-" * 60]
        rows = [(inst.address, inst.source_line, inst.text) for inst in self.instructions]
        rows += self._data_lines
        for addr, line_num, text in rows:
            for name in by_addr.pop(addr, []):
                lines.append(f"{'':10}  {'':4}  {name}:")
            lines.append(f"0x{addr:08x}  {line_num:>4}  {text}")
        for addr in sorted(by_addr):
            for name in by_addr[addr]:
                lines.append(f"0x{addr:08x}  {'':4}  {name}:")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience function
# ──────────────────────────────────────────────

def assemble(source: str) -> Program:
    """Assemble source text, return the Program."""
    return Assembler().assemble(source)
