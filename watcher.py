"""
Change detection for single-page apps.

Re-runs extraction when the page navigates or its content settles after a
burst of mutations, and emits a record only when its fingerprint
(title, sku, price amount, url) differs from the last one emitted.
Navigations always emit.

Everything here runs on the page's event loop; the debounce timer is the
only asynchronous piece and has a single slot.
"""

import asyncio
import enum
import logging
from collections.abc import Callable

import orjson

from assembler import build_product
from config import DEBOUNCE_SECONDS
from models import ProductRecord
from session import PageSession

logger = logging.getLogger(__name__)


class DebounceTimer:
    """Single-slot timer: arming cancels any pending callback and schedules anew."""

    def __init__(self, delay: float, callback: Callable[[], None], loop: asyncio.AbstractEventLoop | None = None):
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class DetectorState(enum.Enum):
    IDLE = "idle"
    PENDING_EMIT = "pending_emit"


def fingerprint(record: ProductRecord) -> bytes:
    return orjson.dumps(record.fingerprint_fields(), option=orjson.OPT_SORT_KEYS)


class ChangeDetector:
    """Decides when to re-extract and whether the result is worth emitting.

    ``emit`` receives every record that should be pushed to listeners; the
    detector owns the last emitted fingerprint and the pending timer.
    """

    def __init__(
        self,
        session: PageSession,
        emit: Callable[[ProductRecord], None],
        delay: float = DEBOUNCE_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.session = session
        self._emit = emit
        self._last_fingerprint: bytes | None = None
        self._timer = DebounceTimer(delay, self._on_timer, loop=loop)
        self._attached = False
        self.emitted = 0

    @property
    def state(self) -> DetectorState:
        return DetectorState.PENDING_EMIT if self._timer.pending else DetectorState.IDLE

    def attach(self) -> None:
        """Install the navigation hooks and the content observer (once)."""
        if self._attached:
            return
        self.session.on_navigation(self.on_navigation)
        self.session.on_mutation(self.on_mutation)
        self._attached = True

    def cancel_pending(self) -> None:
        self._timer.cancel()

    # ----- Events -----

    def on_load(self) -> None:
        self.send_if_changed()

    def on_navigation(self) -> None:
        self.send_if_changed(force=True)
        # Pages keep rendering after the URL changes
        self._arm()

    def on_mutation(self) -> None:
        self._arm()

    def _arm(self) -> None:
        try:
            self._timer.arm()
        except RuntimeError:
            logger.debug("No running event loop; debounce skipped", exc_info=True)

    def _on_timer(self) -> None:
        self.send_if_changed()

    # ----- Emission -----

    def send_if_changed(self, force: bool = False) -> bool:
        """Re-extract and emit when the fingerprint changed or when forced.

        Never raises: a page that can't be read right now simply emits nothing.
        """
        try:
            record = build_product(self.session.snapshot())
            key = fingerprint(record)
            if not force and key == self._last_fingerprint:
                return False
            self._emit(record)
            # Only a record that reached the emitter counts as sent
            self._last_fingerprint = key
            self.emitted += 1
            return True
        except Exception:
            logger.debug(f"Change check failed for {self.session.url}", exc_info=True)
            return False
