"""
Live weight as seen by the operator.

Combines the scale feed, the stability detector and the manual-entry
override into the single "current weight" the console weighs with.
"""

from dataclasses import dataclass

from weighstation.application.stability import StabilityDetector
from weighstation.domain.models import StabilityState, WeightReading


@dataclass(frozen=True)
class WeightStatus:
    """Snapshot of what the weight display shows."""

    weight: float
    live_weight: float
    state: StabilityState
    manual: bool

    @property
    def is_usable(self) -> bool:
        """A capture may proceed."""
        return self.manual or self.state == StabilityState.STABLE


class WeightMonitor:
    """
    Subscriber of the scale session that tracks the current weight.

    Live readings keep flowing while manual entry is on; they are simply
    not used as the effective weight until manual entry is switched off.
    """

    def __init__(self, detector: StabilityDetector):
        self._detector = detector
        self._live_weight = 0.0
        self._manual_weight = 0.0

    @property
    def detector(self) -> StabilityDetector:
        return self._detector

    @property
    def is_manual(self) -> bool:
        return self._detector.manual

    @property
    def live_weight(self) -> float:
        return self._live_weight

    @property
    def current_weight(self) -> float:
        """Weight used for captures and outbound confirmation."""
        if self.is_manual:
            return self._manual_weight
        return self._live_weight

    @property
    def is_usable(self) -> bool:
        return self.status().is_usable

    def status(self) -> WeightStatus:
        return WeightStatus(
            weight=self.current_weight,
            live_weight=self._live_weight,
            state=self._detector.state,
            manual=self.is_manual,
        )

    def on_reading(self, reading: WeightReading) -> None:
        self._live_weight = reading.value
        self._detector.observe(reading.value)

    def set_manual(self, enabled: bool, weight: float = 0.0) -> None:
        """
        Switch manual entry on (with an initial weight) or off.

        Raises:
            ValueError: If the weight is negative.
        """
        if enabled:
            self.set_manual_weight(weight)
        self._detector.set_manual(enabled)

    def set_manual_weight(self, weight: float) -> None:
        if weight < 0:
            raise ValueError(f"Manual weight must be non-negative, got {weight}")
        self._manual_weight = float(weight)

    def reset_live(self) -> None:
        """Zero the live display after the weight source changed."""
        self._live_weight = 0.0
        self._detector.reset()

    def close(self) -> None:
        self._detector.close()
