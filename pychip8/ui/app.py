"""Pygame frontend for the CHIP-8 emulator.

Two clocks drive the machine: a background thread runs instructions at the
configured rate while the main thread runs at 60 Hz, handling input, ticking
the timers, rendering and switching the beeper. Both go through the machine's
entry points, which serialise on its lock.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pychip8.audio import DEFAULT_FREQUENCY, SquareWaveBeeper
from pychip8.cpu import CPUError, CycleStatus, Quirks, TIMER_HZ
from pychip8.io import lookup_key
from pychip8.loader import RomLoadError
from pychip8.system import Machine, MachineConfig, create_machine
from pychip8.utils import debug_enabled, debug_log
from pychip8.video import DISPLAY_HEIGHT, DISPLAY_WIDTH, PALETTES, Renderer, RenderResult

# Upper bound on instructions executed per wake-up of the CPU thread, so a
# stalled thread does not try to catch up on seconds of backlog at once.
_MAX_BATCH = 64


@dataclass
class AppConfig:
    """Configuration for the CHIP-8 emulator frontend."""

    rom_path: Optional[Path] = None
    scale: int = 10
    instructions_per_second: int = 500
    frame_rate: int = TIMER_HZ
    quirks: Quirks = field(default_factory=Quirks)
    palette: str = "mono"
    beep_frequency: float = DEFAULT_FREQUENCY
    mute: bool = False
    seed: Optional[int] = None
    strict: bool = False

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValueError("scale must be positive")
        if self.instructions_per_second <= 0:
            raise ValueError("instructions_per_second must be positive")
        if self.frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        if self.palette not in PALETTES:
            raise ValueError(f"unknown palette {self.palette!r}; choose from {', '.join(sorted(PALETTES))}")


class Chip8App:
    """Wrapper around the pygame event loop and the CPU thread."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._running = False
        self._machine: Machine | None = None
        self._beeper: SquareWaveBeeper | None = None
        self._renderer = Renderer(PALETTES[config.palette])
        self._cpu_thread: threading.Thread | None = None
        self._fault: CPUError | None = None
        self._perf_enabled = debug_enabled("perf")
        self._frame_counter = 0

    @property
    def machine(self) -> Machine | None:
        return self._machine

    @property
    def fault(self) -> CPUError | None:
        return self._fault

    def run(self) -> None:
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required to run the UI") from exc

        if not self._config.rom_path:
            raise RuntimeError("ROM image is required; pass a ROM path")
        machine = self._create_machine()
        self._load_rom(machine, self._config.rom_path)

        pygame.mixer.pre_init(44_100, -16, 1, 512)
        pygame.init()
        pygame.display.set_caption(f"CHIP-8 - {self._config.rom_path.name}")
        self._init_audio(pygame)

        scale = self._config.scale
        screen = pygame.display.set_mode((DISPLAY_WIDTH * scale, DISPLAY_HEIGHT * scale))
        clock = pygame.time.Clock()

        self._running = True
        self._start_cpu_thread()
        try:
            while self._running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self._running = False
                    elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                        self._running = False
                    elif event.type == pygame.KEYDOWN:
                        self._handle_key_event(pygame, event.key, pressed=True)
                    elif event.type == pygame.KEYUP:
                        self._handle_key_event(pygame, event.key, pressed=False)

                if self.step_frame():
                    frame = self.render_frame(scale=scale)
                    screen.blit(frame.to_surface(), (0, 0))
                    pygame.display.flip()

                if self._fault is not None:
                    pygame.display.set_caption(f"CHIP-8 - halted: {self._fault}")

                clock.tick(self._config.frame_rate)
                self._frame_counter += 1
        finally:
            self._stop_cpu_thread()
            if self._beeper is not None:
                self._beeper.shutdown()
            pygame.quit()

    # ------------------------------------------------------------------
    # Machine lifecycle

    def _create_machine(self) -> Machine:
        machine = create_machine(
            MachineConfig(
                quirks=self._config.quirks,
                seed=self._config.seed,
                strict=self._config.strict,
                trace_capacity=512 if debug_enabled("trace") else 0,
            )
        )
        self._machine = machine
        return machine

    def _load_rom(self, machine: Machine, rom_path: Path) -> None:
        try:
            machine.load_rom_file(rom_path)
        except RomLoadError as exc:
            raise RuntimeError(str(exc)) from exc

    def step_frame(self) -> bool:
        """Run the 60 Hz duties and return ``True`` when a redraw is due."""

        machine = self._machine
        if machine is None:
            return False
        with machine.lock:
            machine.decrement_timers()
            sounding = machine.sound_flag
            machine.clear_sound_flag()
            redraw = machine.draw_flag
            machine.clear_draw_flag()
        if self._beeper is not None:
            self._beeper.set_active(sounding)
        return redraw

    def render_frame(self, *, scale: int = 1) -> RenderResult:
        """Render a consistent copy of the framebuffer."""

        if self._machine is None:
            raise RuntimeError("no machine to render")
        return self._renderer.render_pixels(self._machine.frame_snapshot(), scale=scale)

    # ------------------------------------------------------------------
    # CPU thread

    def _start_cpu_thread(self) -> None:
        if self._cpu_thread is not None:
            return
        self._cpu_thread = threading.Thread(target=self._cpu_loop, name="chip8-cpu", daemon=True)
        self._cpu_thread.start()

    def _stop_cpu_thread(self) -> None:
        self._running = False
        if self._cpu_thread is not None:
            self._cpu_thread.join(timeout=0.5)
            self._cpu_thread = None

    def _cpu_loop(self) -> None:
        machine = self._machine
        if machine is None:
            return
        interval = 1.0 / self._config.instructions_per_second
        next_time = time.perf_counter()
        executed = 0
        perf_start = next_time
        while self._running:
            now = time.perf_counter()
            due = 0
            while next_time <= now and due < _MAX_BATCH:
                due += 1
                next_time += interval
            if due == 0:
                time.sleep(next_time - now)
                continue
            if next_time < now:
                next_time = now
            for _ in range(due):
                if not self.execute_cycle():
                    return
            executed += due
            if self._perf_enabled and now - perf_start >= 1.0:
                debug_log("perf", "ips=%.1f", executed / (now - perf_start))
                executed = 0
                perf_start = now

    def execute_cycle(self) -> bool:
        """Run one instruction; ``False`` once the machine has halted."""

        machine = self._machine
        if machine is None:
            return False
        try:
            status = machine.run_cycle()
        except CPUError as exc:
            self._fault = exc
            debug_log("cpu", "fault: %s", exc)
            if machine.trace is not None:
                machine.trace.dump("trace", 32)
            return False
        return status is not CycleStatus.HALTED

    # ------------------------------------------------------------------
    # Input and audio

    def _handle_key_event(self, pygame, key_code: int, *, pressed: bool) -> None:
        machine = self._machine
        if machine is None:
            return
        name = pygame.key.name(key_code)
        key = lookup_key(name)
        if debug_enabled("input"):
            debug_log("input", "event=%s key=%s pressed=%s", name, key, pressed)
        if key is None:
            return
        if pressed:
            machine.press_key(key)
        else:
            machine.release_key(key)

    def _init_audio(self, pygame) -> None:
        if self._config.mute:
            return
        if pygame.mixer.get_init() is None:
            try:
                pygame.mixer.init(44_100, -16, 1)
            except pygame.error as exc:  # pragma: no cover - host dependent
                debug_log("audio", "mixer_init_failed=%s", exc)
                return
        mixer_state = pygame.mixer.get_init()
        if mixer_state is None:
            debug_log("audio", "mixer_unavailable")
            return
        try:
            self._beeper = SquareWaveBeeper(
                frequency=self._config.beep_frequency,
                sample_rate=mixer_state[0],
            )
        except RuntimeError as exc:
            self._beeper = None
            debug_log("audio", "beeper_init_failed=%s", exc)
