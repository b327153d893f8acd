"""
Stability detection for live scale readings.

Indicators usually expose a "stable" bit, but the console cannot rely on
it across models. Instead a reading is stable once it has not changed
for a quiet period.
"""

import asyncio
from collections.abc import Callable

from weighstation.core.logging import get_logger
from weighstation.domain.models import StabilityState

logger = get_logger(__name__)

StabilityListener = Callable[[StabilityState], None]


class StabilityDetector:
    """
    Declares a reading STABLE after a quiet period without changes.

    Every change of the reading switches to MOTION and re-arms a single
    deferred "settle" action; the action is tagged with a generation
    number so a stale timer can never mark a newer reading stable.
    Manual entry forces STABLE and stops the timer.

    Must be driven from a running event loop.

    Example:
        detector = StabilityDetector(quiet_period=0.8)
        detector.observe(15400)   # MOTION
        await asyncio.sleep(1)
        detector.state            # STABLE
    """

    def __init__(self, quiet_period: float = 0.8, tolerance: float = 0.0):
        """
        Initialize detector.

        Args:
            quiet_period: Seconds without change before a reading is stable.
            tolerance: Changes at or below this many kg are ignored.
        """
        self.quiet_period = quiet_period
        self.tolerance = tolerance

        self._state = StabilityState.MOTION
        self._last_value: float | None = None
        self._manual = False
        self._generation = 0
        self._timer: asyncio.TimerHandle | None = None
        self._listeners: list[StabilityListener] = []

    @property
    def state(self) -> StabilityState:
        return self._state

    @property
    def is_stable(self) -> bool:
        return self._state == StabilityState.STABLE

    @property
    def manual(self) -> bool:
        return self._manual

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def add_listener(self, listener: StabilityListener) -> None:
        """Call listener on every state transition."""
        self._listeners.append(listener)

    def observe(self, value: float) -> StabilityState:
        """
        Feed the latest reading.

        Args:
            value: Weight in kg.

        Returns:
            StabilityState: State after the reading.
        """
        if self._last_value is not None and abs(value - self._last_value) <= self.tolerance:
            return self._state

        self._last_value = value
        if self._manual:
            return self._state

        self._set_state(StabilityState.MOTION)
        self._arm()
        return self._state

    def set_manual(self, enabled: bool) -> None:
        """
        Switch manual-entry override on or off.

        Leaving manual mode restarts the quiet period for the last reading.
        """
        if enabled == self._manual:
            return

        self._manual = enabled
        if enabled:
            self._cancel()
            self._set_state(StabilityState.STABLE)
            return

        self._set_state(StabilityState.MOTION)
        if self._last_value is not None:
            self._arm()

    def reset(self) -> None:
        """Forget the last reading, e.g. when the weight source changes."""
        self._cancel()
        self._last_value = None
        if not self._manual:
            self._set_state(StabilityState.MOTION)

    def close(self) -> None:
        """Cancel the pending quiet-period timer."""
        self._cancel()

    def _arm(self) -> None:
        self._cancel()
        self._generation += 1
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.quiet_period, self._settle, self._generation)

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _settle(self, generation: int) -> None:
        if generation != self._generation or self._manual:
            return
        self._timer = None
        self._set_state(StabilityState.STABLE)

    def _set_state(self, state: StabilityState) -> None:
        if state == self._state:
            return
        self._state = state
        logger.debug("scale_stability_changed", state=state.value, weight=self._last_value)
        for listener in self._listeners:
            listener(state)
