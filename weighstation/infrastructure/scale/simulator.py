"""
Synthetic weight source for running the console without a scale.
"""

import math
import random
from dataclasses import dataclass, field

# Drift converges to within HOLD_BAND of the target and then holds,
# which is what lets the stability detector settle.
HOLD_BAND_KG = 10.0
DRIFT_FACTOR = 0.1
JITTER_KG = 50.0
TARGET_CHANGE_PROBABILITY = 0.02


@dataclass
class SimulatedScale:
    """
    Generates readings of a truck driving on and off the platform.

    Each tick moves the weight 10% of the way toward the target with
    +/-25 kg of jitter and holds once within 10 kg. Occasionally the
    target changes to an empty platform or a new loaded truck.

    Attributes:
        target: Current target weight (kg).
        weight: Last generated weight (kg).
        rng: Random source, seedable for tests.

    Example:
        >>> sim = SimulatedScale(target=15400, rng=random.Random(1))
        >>> 0 <= sim.next_weight()
        True
    """

    target: float = 15400.0
    weight: float = 0.0
    rng: random.Random = field(default_factory=random.Random)

    def next_weight(self) -> float:
        """Advance one tick and return the new weight."""
        diff = self.target - self.weight
        if abs(diff) >= HOLD_BAND_KG:
            jitter = (self.rng.random() - 0.5) * JITTER_KG
            self.weight = max(0.0, float(math.floor(self.weight + diff * DRIFT_FACTOR + jitter)))

        if self.rng.random() < TARGET_CHANGE_PROBABILITY:
            self._change_target()

        return self.weight

    def _change_target(self) -> None:
        if self.rng.random() > 0.5:
            self.target = 0.0
        else:
            self.target = float(math.floor(12000 + self.rng.random() * 8000))
