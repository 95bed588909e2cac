from __future__ import annotations

"""
upflix/cooldown.py

Limitador por enfriamiento (cooldown) ante bloqueos upstream.

Estados:
- NORMAL  (se permiten fetches)
- COOLING (todo fetch bloqueado hasta que pase el cooldown)

No hay timer en segundo plano: el estado se recalcula en cada consulta
a partir de la última señal de bloqueo. Thread-safe.
"""

import threading
import time

NORMAL = "normal"
COOLING = "cooling"

# Arranca "muy en el pasado" => limitador inactivo.
_NEVER = float("-inf")


class CooldownLimiter:
    def __init__(self, *, cooldown_seconds: float = 600.0) -> None:
        self._lock = threading.Lock()
        self._cooldown_seconds = max(0.0, float(cooldown_seconds))
        self._last_block_signal = _NEVER

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown_seconds

    def active(self) -> bool:
        now = time.monotonic()
        with self._lock:
            return (now - self._last_block_signal) < self._cooldown_seconds

    def state(self) -> str:
        return COOLING if self.active() else NORMAL

    def remaining_seconds(self) -> float:
        now = time.monotonic()
        with self._lock:
            left = (self._last_block_signal + self._cooldown_seconds) - now
        return max(0.0, left)

    def signal_block(self) -> None:
        """Único mutador. Repetirlo en COOLING extiende la ventana desde ahora."""
        now = time.monotonic()
        with self._lock:
            self._last_block_signal = now
