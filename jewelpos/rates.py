# jewelpos/rates.py
from __future__ import annotations

import threading
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

import sqlStore.rates_repo as rates_repo
from sqlStore.db import connect

from .config import FALLBACK_RATE_PER_GRAM, METAL, RATE_REFRESH_SECONDS
from .domain import RateSnapshot
from .errors import InvalidPricingInput, RateUnavailable
from .logging_setup import get_logger
from .utils import to_decimal

log = get_logger(__name__)

Listener = Callable[[RateSnapshot], None]


def needs_rate_override_confirmation(original, proposed) -> bool:
    """
    True for any difference at all between the rate in effect and the one
    typed by the user. There is no tolerance.
    """
    try:
        new = to_decimal(proposed)
        old = None if original is None else to_decimal(original)
    except ValueError:
        raise InvalidPricingInput(
            f"rate_per_gram is not a number: {proposed!r} vs {original!r}", field="rate_per_gram"
        ) from None
    return old is None or new != old


def _parse_time(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


class RateSource:
    """
    Holds the last good metal rate.

    - refresh() asks the feed; failures keep the previous value.
    - snapshot() is what every pricing/valuation pass reads ONCE at entry.
      Before the first successful fetch it returns the configured fallback,
      or raises RateUnavailable if there is none.
    """

    def __init__(
        self,
        fetch: Callable[[], object],
        fallback_rate=FALLBACK_RATE_PER_GRAM,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._fetch = fetch
        self._fallback: Optional[Decimal] = None if fallback_rate is None else to_decimal(fallback_rate)
        self._clock = clock
        self._current: Optional[RateSnapshot] = None
        self._listeners: list[Listener] = []
        self._refresh_lock = threading.Lock()
        self._warned_fallback = False

    @property
    def has_live_rate(self) -> bool:
        return self._current is not None

    def snapshot(self) -> RateSnapshot:
        snap = self._current
        if snap is not None:
            return snap
        if self._fallback is None:
            raise RateUnavailable()
        if not self._warned_fallback:
            log.warning("No live rate yet, using fallback %s/g", self._fallback)
            self._warned_fallback = True
        return RateSnapshot(self._fallback, self._clock(), source="fallback")

    def _to_snapshot(self, result) -> RateSnapshot:
        if isinstance(result, RateSnapshot):
            rate, at = result.rate_per_gram, result.captured_at
        elif isinstance(result, tuple):
            rate, at = result[0], _parse_time(result[1] if len(result) > 1 else None)
        else:
            rate, at = result, None
        d = to_decimal(rate)
        if d <= 0:
            raise ValueError(f"feed returned a non-positive rate: {d}")
        return RateSnapshot(d, at or self._clock(), source="feed")

    def refresh(self) -> bool:
        """One fetch. Returns True when a new value was stored."""
        with self._refresh_lock:
            try:
                new = self._to_snapshot(self._fetch())
            except Exception as e:
                prev = self._current.rate_per_gram if self._current else None
                log.warning("Rate refresh failed, keeping %s: %s", prev, e)
                return False

            old = self._current
            # single reference swap: readers see old or new, never a mix
            self._current = new
            log.debug("Rate refreshed: %s/g", new.rate_per_gram)

        if old is None or old.rate_per_gram != new.rate_per_gram:
            self._notify(new)
        return True

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _notify(self, snap: RateSnapshot) -> None:
        for cb in list(self._listeners):
            try:
                cb(snap)
            except Exception:
                log.exception("Rate listener failed")


class RateRefresher(threading.Thread):
    """Background loop: refresh once at start, then every ``interval`` seconds."""

    def __init__(self, source: RateSource, interval: float = RATE_REFRESH_SECONDS):
        super().__init__(name="rate-refresher", daemon=True)
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.source = source
        self.interval = float(interval)
        self._stop_event = threading.Event()

    def run(self) -> None:
        self.source.refresh()
        while not self._stop_event.wait(self.interval):
            self.source.refresh()

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout)


def db_rate_feed(db_path: str, metal: str = METAL) -> Callable[[], tuple[float, str]]:
    """
    Fetch callable reading the stored rate. Opens its own connection on each
    call so it can run on the refresher thread.
    """
    def fetch() -> tuple[float, str]:
        con = connect(db_path)
        try:
            row = rates_repo.load_rate(con, metal)
        finally:
            con.close()
        if row is None:
            raise LookupError(f"No {metal} rate stored")
        return row

    return fetch
