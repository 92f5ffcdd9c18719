"""Modifier ledger: time-limited effects and permanent technology bonuses.

Every contribution is multiplicative. Effects come from registered templates;
a single-stack template replaces any active effect of the same type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from settlement_sim.core.results import Failure, Outcome
from settlement_sim.simulation.events import EFFECT_APPLIED, EFFECT_EXPIRED, EventBus

CATEGORIES: tuple[str, ...] = ("magical", "weather", "technology")


@dataclass(frozen=True)
class EffectTemplate:
    effect_type: str
    name: str
    category: str
    multipliers: dict[str, float]
    single_stack: bool = True
    default_duration: int = 10


@dataclass
class Effect:
    """An active, time-limited effect instance."""

    effect_id: str
    effect_type: str
    category: str
    multipliers: dict[str, float]
    start_day: int
    duration: int
    end_day: int = field(init=False)

    def __post_init__(self) -> None:
        self.end_day = self.start_day + self.duration

    def to_dict(self) -> dict:
        return {
            "id": self.effect_id,
            "type": self.effect_type,
            "category": self.category,
            "multipliers": dict(self.multipliers),
            "start_day": self.start_day,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Effect:
        return cls(
            effect_id=data["id"],
            effect_type=data["type"],
            category=data["category"],
            multipliers={k: float(v) for k, v in data["multipliers"].items()},
            start_day=int(data["start_day"]),
            duration=int(data["duration"]),
        )


# Construction speed per season
SEASON_CONSTRUCTION_FACTORS: dict[str, float] = {
    "spring": 1.1,
    "sprummer": 1.15,
    "summer": 1.2,
    "sumtumn": 1.1,
    "autumn": 1.0,
    "autinter": 0.9,
    "winter": 0.8,
    "winting": 0.85,
}

DEFAULT_TEMPLATES: list[EffectTemplate] = [
    EffectTemplate("weather_sunny", "Sunny Weather", "weather",
                   {"farmEfficiency": 1.2, "quarryEfficiency": 1.1}),
    EffectTemplate("weather_rainy", "Rainy Weather", "weather",
                   {"farmEfficiency": 1.3, "quarryEfficiency": 0.8, "woodcutterLodgeEfficiency": 0.9}),
    EffectTemplate("weather_stormy", "Stormy Weather", "weather",
                   {"farmEfficiency": 0.7, "quarryEfficiency": 0.6, "woodcutterLodgeEfficiency": 0.7}),
    EffectTemplate("haste_rune", "Haste Rune", "magical", {"buildingEfficiency": 1.5}),
] + [
    EffectTemplate(f"season_{season}", f"{season.title()} Season", "weather",
                   {"constructionEfficiency": factor})
    for season, factor in SEASON_CONSTRUCTION_FACTORS.items()
]

# technology -> {key: bonus per level}
TECHNOLOGY_BONUSES: dict[str, dict[str, float]] = {
    "construction": {"constructionEfficiency": 0.02},
    "agriculture": {"farmEfficiency": 0.05},
    "forestry": {"woodcutterLodgeEfficiency": 0.05},
    "mining": {"quarryEfficiency": 0.05, "mineEfficiency": 0.05},
}


class ModifierLedger:
    """Active effects plus the permanent technology table."""

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self._bus = bus
        self._templates: dict[str, EffectTemplate] = {}
        self._effects: dict[str, Effect] = {}
        self._technology: dict[str, int] = {}
        self._counter: int = 0
        for template in DEFAULT_TEMPLATES:
            self.register_template(template)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def register_template(self, template: EffectTemplate) -> None:
        if template.effect_type in self._templates:
            raise ValueError(f"Effect template {template.effect_type!r} already registered")
        if template.category not in CATEGORIES:
            raise ValueError(f"Unknown effect category {template.category!r}")
        self._templates[template.effect_type] = template

    def has_template(self, effect_type: str) -> bool:
        return effect_type in self._templates

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    @property
    def active_effects(self) -> list[Effect]:
        return list(self._effects.values())

    def get_effect(self, effect_id: str) -> Optional[Effect]:
        return self._effects.get(effect_id)

    def get_effect_by_type(self, effect_type: str) -> Optional[Effect]:
        for effect in self._effects.values():
            if effect.effect_type == effect_type:
                return effect
        return None

    def apply(self, effect_type: str, duration: Optional[int] = None, current_day: int = 0) -> Outcome:
        """Start an effect from its template. The new ``Effect`` is the outcome's value."""
        template = self._templates.get(effect_type)
        if template is None:
            return Outcome.failure(Failure.UNKNOWN_EFFECT, f"no effect template {effect_type!r}")

        if template.single_stack:
            existing = self.get_effect_by_type(effect_type)
            if existing is not None:
                del self._effects[existing.effect_id]

        self._counter += 1
        effect = Effect(
            effect_id=f"{effect_type}_{self._counter}",
            effect_type=effect_type,
            category=template.category,
            multipliers=dict(template.multipliers),
            start_day=current_day,
            duration=max(0, template.default_duration if duration is None else duration),
        )
        self._effects[effect.effect_id] = effect
        if self._bus is not None:
            self._bus.emit(
                EFFECT_APPLIED,
                f"{template.name} takes effect for {effect.duration} days",
                effect_id=effect.effect_id,
                effect_type=effect_type,
                category=effect.category,
                end_day=effect.end_day,
            )
        return Outcome.success(effect)

    def remove(self, effect_id: str) -> Outcome:
        effect = self._effects.pop(effect_id, None)
        if effect is None:
            return Outcome.failure(Failure.UNKNOWN_EFFECT, f"no active effect {effect_id!r}")
        return Outcome.success(effect)

    def expire_daily(self, current_day: int) -> list[Effect]:
        """Drop every effect whose end day has arrived. Technology is untouched."""
        expired = [e for e in self._effects.values() if e.end_day <= current_day]
        for effect in expired:
            del self._effects[effect.effect_id]
            if self._bus is not None:
                self._bus.emit(
                    EFFECT_EXPIRED,
                    f"{self._template_name(effect.effect_type)} has worn off",
                    effect_id=effect.effect_id,
                    effect_type=effect.effect_type,
                    category=effect.category,
                )
        return expired

    def remaining_days(self, effect_id: str, current_day: int) -> int:
        effect = self._effects.get(effect_id)
        if effect is None:
            return 0
        return max(0, effect.end_day - current_day)

    # ------------------------------------------------------------------
    # Technology
    # ------------------------------------------------------------------

    def set_technology_level(self, name: str, level: int) -> None:
        self._technology[name] = max(0, int(level))

    def technology_level(self, name: str) -> int:
        return self._technology.get(name, 0)

    @property
    def technology_levels(self) -> dict[str, int]:
        return dict(self._technology)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def effect_multiplier(self, key: str) -> float:
        """Product of active effect contributions only."""
        result = 1.0
        for effect in self._effects.values():
            result *= effect.multipliers.get(key, 1.0)
        return result

    def technology_multiplier(self, key: str) -> float:
        result = 1.0
        for tech, level in self._technology.items():
            per_level = TECHNOLOGY_BONUSES.get(tech, {}).get(key)
            if per_level and level:
                result *= 1.0 + per_level * level
        return result

    def multiplier_for(self, key: str) -> float:
        return self.effect_multiplier(key) * self.technology_multiplier(key)

    def building_multiplier(self, building_type: str) -> float:
        return self.multiplier_for("buildingEfficiency") * self.multiplier_for(f"{building_type}Efficiency")

    def summary(self, current_day: int) -> dict:
        return {
            "active": [
                {
                    "id": e.effect_id,
                    "type": e.effect_type,
                    "category": e.category,
                    "multipliers": dict(e.multipliers),
                    "remaining_days": self.remaining_days(e.effect_id, current_day),
                }
                for e in self._effects.values()
            ],
            "technology": dict(self._technology),
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "effects": [e.to_dict() for e in self._effects.values()],
            "technology": dict(self._technology),
            "counter": self._counter,
        }

    def load_dict(self, data: dict) -> None:
        self._effects = {}
        for raw in data.get("effects", []):
            effect = Effect.from_dict(raw)
            self._effects[effect.effect_id] = effect
        self._technology = {k: int(v) for k, v in data.get("technology", {}).items()}
        self._counter = int(data.get("counter", len(self._effects)))

    def _template_name(self, effect_type: str) -> str:
        template = self._templates.get(effect_type)
        return template.name if template else effect_type
