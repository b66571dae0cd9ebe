"""
MIPS Simulator - Execution Controller

The Simulator owns the one loaded Program and the one MachineState and
is the only thing that mutates them. A display layer drives it through
this small surface and watches state through listeners:

  assemble(source)     stop any run, assemble, install program + fresh state
  step()               execute one instruction (no-op when halted)
  reset()              cleared registers/memory/output, PC at entry
  set_running(bool)    start/stop continuous run on a background thread
  run(...)             continuous run in the caller's thread

Continuous run is cooperative. run_iter() executes one instruction per
iteration and yields between instructions; the cancel flag is checked at
every yield point before the next fetch. An in-flight instruction is
never interrupted. All state changes happen under one lock, and
assemble()/reset() stop and join the run thread before touching
anything, so an old program never executes against a new one.

Run loop termination:
  EXIT / END / FAULT   reported by the machine state
  BREAK                next PC is a breakpoint
  CANCELLED            stop requested
  TIMEOUT              max_steps reached
"""

import logging
import threading
from typing import Callable, Iterator, List, Optional, Set, Union

from .assembler import Assembler
from .config import RUN_DELAY
from .emu import Interpreter, RuntimeFault
from .machine import MachineState, StopReason
from .program import EMPTY_PROGRAM, Program

logger = logging.getLogger(__name__)

Listener = Callable[[MachineState], None]


class Simulator:
    """Single-owner controller for program + machine state.

    Usage:
        sim = Simulator(delay=0)
        sim.assemble(source)
        reason = sim.run()
        print(sim.state.output)
    """

    def __init__(self, delay: float = RUN_DELAY, max_steps: Optional[int] = None):
        self.delay = delay
        self.max_steps = max_steps
        self.program: Program = EMPTY_PROGRAM
        self.state: MachineState = MachineState.fresh(self.program)
        self.assembler = Assembler()
        self.last_stop: Optional[StopReason] = None

        self._interp = Interpreter(self.program)
        self._lock = threading.RLock()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._breakpoints: Set[int] = set()
        self._listeners: List[Listener] = []

        self.trace_enabled = False
        self.trace: List[str] = []

    # ══════════════════════════════════════════════
    # Program loading
    # ══════════════════════════════════════════════

    def assemble(self, source: str) -> Program:
        """Replace the program and reset the machine.

        Stops a continuous run first. On AssemblerError the previous
        program and state are left exactly as they were.
        """
        self.stop()
        with self._lock:
            program = self.assembler.assemble(source)
            self._install(program)
        self._notify()
        return program

    def load(self, program: Program):
        """Install an already-assembled program."""
        self.stop()
        with self._lock:
            self._install(program)
        self._notify()

    def _install(self, program: Program):
        self.program = program
        self._interp = Interpreter(program)
        self.state = MachineState.fresh(program)
        self.last_stop = None
        self.trace = []

    def reset(self):
        """Zero registers, clear memory and output, PC back to the entry.

        The .data image is only reinstalled by assemble() or load().
        """
        self.stop()
        with self._lock:
            self.state.reset(self.program)
            self.last_stop = None
            self.trace = []
        self._notify()

    # ══════════════════════════════════════════════
    # Single step
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns the stop reason, if any.

        Faults are recorded on the state and logged, never raised.
        """
        with self._lock:
            reason = self._step_locked()
        self._notify()
        return reason

    def _step_locked(self) -> Optional[StopReason]:
        state = self.state
        if state.halted:
            return state.stop_reason
        if self.trace_enabled:
            inst = self.program.instruction_at(state.pc)
            if inst is not None:
                self.trace.append(f"0x{state.pc:08x}: {inst}")
        try:
            self._interp.step(state)
        except RuntimeFault as fault:
            logger.warning("%s", fault)
        if state.halted:
            self.last_stop = state.stop_reason
        return state.stop_reason

    # ══════════════════════════════════════════════
    # Continuous run
    # ══════════════════════════════════════════════

    def run_iter(self, max_steps: Optional[int] = None,
                 cancel: Optional[threading.Event] = None) -> Iterator[MachineState]:
        """Step until a stop condition, yielding the state after each step.

        The generator's return value (StopIteration.value) is the
        StopReason; it is also stored in self.last_stop.
        """
        cancel = cancel if cancel is not None else self._cancel
        limit = max_steps if max_steps is not None else self.max_steps
        executed = 0
        reason: Optional[StopReason] = None

        while reason is None:
            if cancel.is_set():
                reason = StopReason.CANCELLED
                break
            if limit is not None and executed >= limit:
                reason = StopReason.TIMEOUT
                break
            with self._lock:
                if executed and self.state.pc in self._breakpoints:
                    reason = StopReason.BREAK
                    break
                reason = self._step_locked()
            executed += 1
            self._notify()
            yield self.state

        self.last_stop = reason
        return reason

    def run(self, max_steps: Optional[int] = None,
            cancel: Optional[threading.Event] = None,
            delay: Optional[float] = None) -> StopReason:
        """Blocking continuous run, paced by delay seconds per instruction."""
        delay = self.delay if delay is None else delay
        cancel = cancel if cancel is not None else self._cancel
        logger.info("Run started at PC 0x%08x", self.state.pc)
        runner = self.run_iter(max_steps=max_steps, cancel=cancel)
        while True:
            try:
                next(runner)
            except StopIteration as done:
                reason = done.value
                break
            if delay:
                cancel.wait(delay)
        logger.info("Run stopped: %s after %d step(s)", reason.value, self.state.steps)
        return reason

    def set_running(self, running: bool):
        """Start or stop continuous run on a background thread."""
        if running:
            self.start()
        else:
            self.stop()

    def start(self):
        if self.is_running:
            return
        self._cancel.clear()
        self._thread = threading.Thread(target=self._run_thread, name='mips-run', daemon=True)
        self._thread.start()

    def _run_thread(self):
        try:
            self.run()
        finally:
            self._cancel.clear()

    def stop(self, timeout: Optional[float] = None):
        """Request cancellation and wait for the run thread to exit.

        Called from the run thread itself (e.g. by a listener), only the
        request is made; the loop exits at its next yield point.
        """
        self._cancel.set()
        thread = self._thread
        if thread is threading.current_thread():
            return
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                return
            self._thread = None
        self._cancel.clear()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a background run finishes. True if it did."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # ══════════════════════════════════════════════
    # Breakpoints / observers
    # ══════════════════════════════════════════════

    def add_breakpoint(self, where: Union[int, str]) -> int:
        addr = self.program.labels[where] if isinstance(where, str) else where
        self._breakpoints.add(addr)
        return addr

    def remove_breakpoint(self, where: Union[int, str]):
        addr = self.program.labels[where] if isinstance(where, str) else where
        self._breakpoints.discard(addr)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    @property
    def breakpoints(self) -> Set[int]:
        return set(self._breakpoints)

    def add_listener(self, callback: Listener):
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener):
        self._listeners = [cb for cb in self._listeners if cb != callback]

    def _notify(self):
        for cb in list(self._listeners):
            cb(self.state)

    # ══════════════════════════════════════════════
    # Observable state
    # ══════════════════════════════════════════════

    @property
    def current_line(self) -> Optional[int]:
        """Source line of the instruction at PC, for highlighting."""
        with self._lock:
            return self.program.source_line(self.state.pc)

    def snapshot(self) -> dict:
        with self._lock:
            snap = self.state.snapshot()
            snap['current_line'] = self.program.source_line(self.state.pc)
            snap['instructions'] = [str(inst) for inst in self.program.instructions]
        snap['running'] = self.is_running
        return snap
