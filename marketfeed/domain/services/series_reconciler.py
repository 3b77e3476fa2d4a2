"""
MarketFeed – Series Reconciler
==============================
Mantiene la ventana autoritativa de velas de UNA suscripción: ordenada
por open_time ascendente, sin duplicados y acotada a `limit` elementos.

ALGORITMO (apply_live_candle), comparando contra la cola actual:
  1. Ventana vacía          → append (SEEDED)
  2. open_time == cola      → reemplazo in-place de la cola (REPLACED)
  3. open_time  > cola      → append; si se excede limit se descarta la
                              más antigua (APPENDED | EVICTED)
  4. open_time  < cola      → update stale/desordenado: se ignora (STALE)

`closed` no cambia el merge: solo indica que el próximo update abrirá un
intervalo nuevo.

apply_snapshot() reemplaza la ventana COMPLETA: un snapshot fresco del
venue siempre gana sobre el estado derivado del cache o construido en
vivo (que pudo empezar a mitad de stream con huecos).

PROTECCIÓN DE MEMORIA:
- collections.deque(maxlen=limit) → la eviction de la más antigua es O(1)
  y la ventana nunca supera el límite.

Sin I/O y sin await: la persistencia la dispara el controller según el
MergeOutcome devuelto.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Iterable, Optional

from marketfeed.domain.entities.candle import Candle
from marketfeed.shared.logging.logger import get_logger

logger = get_logger("series_reconciler")

DEFAULT_WINDOW_LIMIT = 500


class MergeOutcome(str, Enum):
    """Resultado de aplicar una vela en vivo."""

    SEEDED = "seeded"
    REPLACED = "replaced"
    APPENDED = "appended"
    EVICTED = "evicted"
    STALE = "stale"

    @property
    def changed(self) -> bool:
        return self is not MergeOutcome.STALE


class SeriesReconciler:
    """
    Ventana acotada de velas + política de merge snapshot/stream.

    Uso:
        reconciler = SeriesReconciler(limit=500, interval_ms=60_000)
        reconciler.apply_snapshot(candles)
        outcome = reconciler.apply_live_candle(candle, closed=False)
    """

    def __init__(
        self,
        limit: int = DEFAULT_WINDOW_LIMIT,
        interval_ms: Optional[int] = None,
        label: str = "",
    ) -> None:
        if limit < 1:
            raise ValueError("limit debe ser >= 1")
        self._limit = limit
        self._interval_ms = interval_ms
        self._label = label
        self._window: deque[Candle] = deque(maxlen=limit)

        # Contadores de monitoreo
        self._counts = {outcome.value: 0 for outcome in MergeOutcome}
        self._snapshots_applied = 0
        self._gaps_detected = 0

    # ──────────────────────── Lectura ────────────────────────────────────

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window(self) -> tuple[Candle, ...]:
        """Copia inmutable de la ventana (más antigua primero)."""
        return tuple(self._window)

    @property
    def last(self) -> Optional[Candle]:
        return self._window[-1] if self._window else None

    def __len__(self) -> int:
        return len(self._window)

    # ──────────────────────── Snapshot ───────────────────────────────────

    def apply_snapshot(self, candles: Iterable[Candle]) -> int:
        """
        Reemplazar la ventana completa con una secuencia ascendente.
        Se conservan como máximo las `limit` más recientes.

        Filas cuyo open_time no crece estrictamente se descartan para que
        la invariante de orden se mantenga aunque el origen sea el cache.
        """
        ordered: list[Candle] = []
        dropped = 0
        for candle in candles:
            if ordered and candle.open_time <= ordered[-1].open_time:
                dropped += 1
                continue
            ordered.append(candle)

        if dropped:
            logger.warning(
                "[%s] Snapshot con %d filas fuera de orden/duplicadas descartadas",
                self._label, dropped,
            )

        self._window = deque(ordered[-self._limit:], maxlen=self._limit)
        self._snapshots_applied += 1
        logger.debug("[%s] Snapshot aplicado: %d velas", self._label, len(self._window))
        return len(self._window)

    # ──────────────────────── Live ───────────────────────────────────────

    def apply_live_candle(self, candle: Candle, closed: bool = False) -> MergeOutcome:
        """Merge de una vela del stream contra la cola actual. O(1)."""
        outcome = self._merge(candle)
        self._counts[outcome.value] += 1
        if outcome is MergeOutcome.STALE:
            logger.debug(
                "[%s] Update stale descartado: t=%d < cola t=%d",
                self._label, candle.open_time, self._window[-1].open_time,
            )
        elif closed:
            logger.debug("[%s] Vela cerrada t=%d C=%.8g", self._label, candle.open_time, candle.close)
        return outcome

    def _merge(self, candle: Candle) -> MergeOutcome:
        # ── CASO 1: ventana vacía ──
        if not self._window:
            self._window.append(candle)
            return MergeOutcome.SEEDED

        last_time = self._window[-1].open_time

        # ── CASO 2: mismo intervalo → la vela en curso se actualiza ──
        if candle.open_time == last_time:
            self._window[-1] = candle
            return MergeOutcome.REPLACED

        # ── CASO 3: intervalo nuevo ──
        if candle.open_time > last_time:
            self._check_gap(last_time, candle.open_time)
            full = len(self._window) == self._limit
            self._window.append(candle)  # deque(maxlen) descarta la más antigua
            return MergeOutcome.EVICTED if full else MergeOutcome.APPENDED

        # ── CASO 4: stale / desordenado ──
        return MergeOutcome.STALE

    def _check_gap(self, last_time: int, new_time: int) -> None:
        """El stream es autoritativo: un hueco se acepta, pero se registra."""
        if self._interval_ms and new_time - last_time > self._interval_ms:
            missing = (new_time - last_time) // self._interval_ms - 1
            self._gaps_detected += 1
            logger.info(
                "[%s] Hueco en la serie: %d intervalos entre t=%d y t=%d",
                self._label, missing, last_time, new_time,
            )

    # ──────────────────────── Stats ──────────────────────────────────────

    @property
    def stats(self) -> dict:
        """Estadísticas del reconciliador para monitoreo."""
        return {
            "window_size": len(self._window),
            "limit": self._limit,
            "first_open_time": self._window[0].open_time if self._window else None,
            "last_open_time": self._window[-1].open_time if self._window else None,
            "snapshots_applied": self._snapshots_applied,
            "gaps_detected": self._gaps_detected,
            **self._counts,
        }
