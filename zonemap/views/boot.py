"""
boot.py — Intro terminal shown before the map.

Reveals one line of the boot sequence every 0.8 s, then shows the enter
button. The player can skip at any time, which prints the remaining lines
at once. The timer task is cancelled on skip, on finish, and on stop().
"""

import asyncio
import logging
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)

BOOT_SEQUENCE = (
    "INICIANDO PROTOCOLO DUGA-2...",
    "---",
    "BUSCANDO HARDWARE COMPATÍVEL...",
    "ASSINATURA DE ASSIMILAÇÃO ENCONTRADA.",
    "BEM-VINDOS, ",
    "Chip",
    "Marcus",
    "Briana",
    "Sofia",
    "...",
    "SISTEMA PRONTO.",
)

LINE_INTERVAL = 0.8


class BootSequence:
    def __init__(
        self,
        lines: Sequence[str] = BOOT_SEQUENCE,
        interval: float = LINE_INTERVAL,
        on_line: Optional[Callable[[str], None]] = None,
    ):
        self._lines = tuple(lines)
        self._interval = interval
        self._on_line = on_line
        self._task: Optional[asyncio.Task] = None
        self.shown: list[str] = []
        self.show_enter_button = False

    @property
    def finished(self) -> bool:
        return self.show_enter_button

    def tick(self) -> bool:
        """Reveal the next line. Returns False once the sequence is complete."""
        if len(self.shown) < len(self._lines):
            line = self._lines[len(self.shown)]
            self.shown.append(line)
            if self._on_line is not None:
                self._on_line(line)
            return True
        self.show_enter_button = True
        return False

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
        return self._task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not self.tick():
                return

    def skip(self) -> None:
        self.stop()
        self.shown = list(self._lines)
        self.show_enter_button = True
        logger.debug("Boot sequence skipped")

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
