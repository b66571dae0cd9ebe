"""
MIPS Simulator - Memory Layout + Run Profiles

Address map (matches the MARS/SPIM "compact" convention the sample
programs are written against):

  0x00400000  TEXT_BASE   first instruction, PC at reset
  0x10010000  DATA_BASE   first byte of the .data segment
  0x7FFFFFFC  STACK_BASE  $sp at reset (stack grows downward)

Run profiles are named dicts of defaults that CLI flags may override.
"""

TEXT_BASE = 0x00400000
DATA_BASE = 0x10010000
STACK_BASE = 0x7FFFFFFC

WORD_SIZE = 4

# print_string (syscall 4) stops after this many bytes without a NUL
PRINT_STRING_CAP = 1000

# Seconds between instructions in continuous-run mode
RUN_DELAY = 0.010

DEFAULT_MAX_STEPS = 1_000_000

RUN_PROFILES = {
    "interactive": {
        "delay": RUN_DELAY,
        "max_steps": None,
        "description": "Paced execution for watching state change",
    },
    "batch": {
        "delay": 0.0,
        "max_steps": DEFAULT_MAX_STEPS,
        "description": "Run flat out with a step limit",
    },
}
