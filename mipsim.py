#!/usr/bin/env python3
"""
mipsim - MIPS Simulator CLI

Usage:
    python mipsim.py <program.asm> [--profile batch|interactive]
                     [--max-steps N] [--delay SECONDS]
                     [--listing] [--regs] [--memory] [--trace]
                     [-v | -q] [--rich] [--log-file PATH]
    python mipsim.py --demo [fibonacci]

Program output (syscalls 1/4/11) goes to stdout. Diagnostics and the
optional dumps go to stderr.

Exit codes:
    0  program exited (syscall 10) or ran off the end
    1  input file or assembler error
    2  runtime fault
    3  step limit reached

Examples:
    python mipsim.py fib.asm
    python mipsim.py fib.asm --listing --regs
    python mipsim.py --demo --profile interactive -v
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from mips_sim import __version__
from mips_sim.assembler import AssemblerError
from mips_sim.config import RUN_PROFILES
from mips_sim.machine import StopReason
from mips_sim.samples import SAMPLES
from mips_sim.scheduler import Simulator

logger = logging.getLogger("mipsim")

EXIT_OK = 0
EXIT_INPUT = 1
EXIT_FAULT = 2
EXIT_TIMEOUT = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mipsim",
        description="Assemble and run a MIPS assembly program",
        epilog="Profiles: " + ", ".join(
            f"{name} ({p['description']})" for name, p in RUN_PROFILES.items()),
    )
    parser.add_argument("input", nargs="?", help="Assembly source file")
    parser.add_argument("--demo", nargs="?", const="fibonacci", choices=sorted(SAMPLES),
                        help="Run a bundled sample program (default: fibonacci)")
    parser.add_argument("--profile", default="batch", choices=list(RUN_PROFILES.keys()),
                        help="Run profile (default: batch)")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Stop after N instructions (overrides profile)")
    parser.add_argument("--delay", type=float, default=None,
                        help="Seconds between instructions (overrides profile)")
    parser.add_argument("--listing", action="store_true",
                        help="Print the assembly listing to stderr before running")
    parser.add_argument("--regs", action="store_true",
                        help="Dump registers to stderr after the run")
    parser.add_argument("--memory", action="store_true",
                        help="Hex dump defined memory to stderr after the run")
    parser.add_argument("--trace", action="store_true",
                        help="Print every executed instruction to stderr")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--rich", action="store_true",
                        help="Colourised console logging")
    parser.add_argument("--log-file", type=str, help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version", version=f"mipsim {__version__}")
    return parser


def setup_logging(args):
    """Configure logging based on arguments."""
    if args.quiet:
        level = logging.ERROR
    elif args.verbose == 0:
        level = logging.WARNING
    elif args.verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    if args.rich:
        console = RichHandler(console=Console(stderr=True), show_time=False,
                              show_path=False, rich_tracebacks=True)
    else:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    console.setLevel(level)
    handlers = [console]

    if args.log_file:
        log_path = Path(args.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if args.log_file else level,
        handlers=handlers,
        force=True,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args)

    if args.demo:
        source, name = SAMPLES[args.demo], f"<{args.demo}>"
    elif args.input:
        name = args.input
        try:
            source = Path(args.input).read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.error("File not found: %s", args.input)
            return EXIT_INPUT
        except OSError as e:
            logger.error("Error reading %s: %s", args.input, e)
            return EXIT_INPUT
    else:
        parser.print_usage(sys.stderr)
        logger.error("No input file (use --demo for the sample program)")
        return EXIT_INPUT

    profile = RUN_PROFILES[args.profile]
    delay = args.delay if args.delay is not None else profile["delay"]
    max_steps = args.max_steps if args.max_steps is not None else profile["max_steps"]

    sim = Simulator(delay=delay, max_steps=max_steps)
    sim.trace_enabled = args.trace

    try:
        sim.assemble(source)
    except AssemblerError as e:
        logger.error("Assembler error in %s: %s", name, e)
        return EXIT_INPUT

    if args.listing:
        print(sim.assembler.get_listing(), file=sys.stderr)

    reason = sim.run()
    sys.stdout.write(sim.state.output)
    sys.stdout.flush()

    if args.trace:
        print("\n".join(sim.trace), file=sys.stderr)
    if args.regs:
        print(f"   pc {sim.state.pc:08x}", file=sys.stderr)
        print(sim.state.regs.display(), file=sys.stderr)
    if args.memory:
        print(sim.state.mem.hexdump(), file=sys.stderr)

    if reason is StopReason.FAULT:
        logger.error("%s", sim.state.fault)
        return EXIT_FAULT
    if reason is StopReason.TIMEOUT:
        logger.error("Step limit reached (%d instructions)", sim.state.steps)
        return EXIT_TIMEOUT
    logger.info("Finished: %s after %d step(s)", reason.value, sim.state.steps)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
