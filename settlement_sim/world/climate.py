"""Daily weather rolls, applied to the settlement as modifier effects."""

from __future__ import annotations

from typing import Optional

from numpy.random import Generator

from settlement_sim.core.config import WEATHER_DURATION_DAYS

# Weather probabilities by season: weather_type -> probability
_WEATHER_PROBS: dict[str, dict[str, float]] = {
    "spring": {"clear": 0.50, "sunny": 0.20, "rainy": 0.25, "stormy": 0.05},
    "sprummer": {"clear": 0.50, "sunny": 0.30, "rainy": 0.15, "stormy": 0.05},
    "summer": {"clear": 0.45, "sunny": 0.40, "rainy": 0.10, "stormy": 0.05},
    "sumtumn": {"clear": 0.50, "sunny": 0.25, "rainy": 0.17, "stormy": 0.08},
    "autumn": {"clear": 0.45, "sunny": 0.10, "rainy": 0.30, "stormy": 0.15},
    "autinter": {"clear": 0.50, "sunny": 0.05, "rainy": 0.30, "stormy": 0.15},
    "winter": {"clear": 0.60, "sunny": 0.05, "rainy": 0.20, "stormy": 0.15},
    "winting": {"clear": 0.55, "sunny": 0.10, "rainy": 0.25, "stormy": 0.10},
}


class Climate:
    """Daily weather generation."""

    def __init__(self, rng: Generator) -> None:
        self._rng = rng
        self.current_weather: str = "clear"
        self.consecutive_dry_days: int = 0

    def advance_day(self, season: str) -> str:
        """Roll weather for the new day."""
        probs = _WEATHER_PROBS.get(season, _WEATHER_PROBS["spring"])
        weather_types = list(probs.keys())
        weights = [probs[w] for w in weather_types]
        total = sum(weights)
        weights = [w / total for w in weights]
        self.current_weather = str(self._rng.choice(weather_types, p=weights))

        if self.current_weather in ("rainy", "stormy"):
            self.consecutive_dry_days = 0
        else:
            self.consecutive_dry_days += 1
        return self.current_weather

    @property
    def effect_type(self) -> Optional[str]:
        """Modifier template for today's weather; clear skies have none."""
        if self.current_weather == "clear":
            return None
        return f"weather_{self.current_weather}"

    def apply_to(self, modifiers: "ModifierLedger", current_day: int) -> None:  # noqa: F821
        effect_type = self.effect_type
        if effect_type is not None:
            modifiers.apply(effect_type, WEATHER_DURATION_DAYS, current_day)
