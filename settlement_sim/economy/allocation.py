"""Job allocation registry: job slots, worker assignment and daily output.

The slot table is the single authority on who works where; the reverse
villager -> slot lookup is derived from it and kept in step on every change.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional, Protocol

from settlement_sim.agents.capability import worker_capability
from settlement_sim.agents.population import PopulationLedger
from settlement_sim.agents.skills import DEFAULT_TIERS, LevelUp
from settlement_sim.agents.villager import (
    SOLDIER_STAGES,
    Villager,
    VillagerStatus,
    WORKING_STAGES,
)
from settlement_sim.core.config import (
    JOB_DAILY_XP,
    JOB_SKILL_BONUS_PER_LEVEL,
    MENTORSHIP_BONUS_XP,
)
from settlement_sim.core.results import Failure, Outcome
from settlement_sim.economy.jobs import DEFAULT_JOBS, JobDefinition, JobSlot
from settlement_sim.world.buildings import Building
from settlement_sim.world.modifiers import ModifierLedger


def assignment_blocker(villager: Villager, soldier_class: bool = False) -> Optional[Outcome]:
    """Why a villager can't take new work, or None if they can.

    Shared by job slots and construction sites so both apply the same rules.
    """
    if villager.is_busy:
        return Outcome.failure(Failure.ALREADY_ASSIGNED, f"{villager.name} is already assigned")
    if not villager.is_available:
        return Outcome.failure(Failure.UNAVAILABLE, f"{villager.name} is {villager.status.value}")
    allowed = SOLDIER_STAGES if soldier_class else WORKING_STAGES
    if villager.life_stage not in allowed:
        return Outcome.failure(
            Failure.INELIGIBLE_AGE,
            f"{villager.name} ({villager.life_stage.value}) can't take this work",
        )
    return None


class AssignmentTarget(Protocol):
    """Anything auto-assignment can fill: a group of job slots or a construction site."""

    building_id: int
    index: int

    @property
    def filled(self) -> int: ...

    @property
    def capacity(self) -> int: ...

    def accepts(self, villager: Villager) -> bool: ...

    def assign(self, villager_id: int) -> Outcome: ...


class _SlotGroup:
    """All slots of one job at one building, filled as a unit by auto-assignment."""

    def __init__(self, registry: JobAllocationRegistry, slots: list[JobSlot], soldier_class: bool) -> None:
        self._registry = registry
        self._slots = slots
        self._soldier_class = soldier_class
        self.building_id = slots[0].building_id
        self.index = min(s.index for s in slots)

    @property
    def filled(self) -> int:
        return sum(1 for s in self._slots if not s.is_open)

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def accepts(self, villager: Villager) -> bool:
        return assignment_blocker(villager, self._soldier_class) is None

    def assign(self, villager_id: int) -> Outcome:
        for slot in sorted(self._slots, key=lambda s: s.index):
            if slot.is_open:
                return self._registry.assign(villager_id, slot.slot_id)
        return Outcome.failure(Failure.SLOT_OCCUPIED, "no open slot")


class JobAllocationRegistry:
    """Owns job definitions and every job slot in the settlement."""

    def __init__(self, population: PopulationLedger, modifiers: ModifierLedger) -> None:
        self._population = population
        self._modifiers = modifiers
        self._jobs: dict[str, JobDefinition] = {}
        self._slots: dict[int, JobSlot] = {}
        self._slot_of: dict[int, int] = {}  # villager id -> slot id
        self._buildings_with_slots: set[int] = set()
        self._next_slot_id: int = 0
        for job in DEFAULT_JOBS:
            self.register_job_type(job)

    # ------------------------------------------------------------------
    # Job types
    # ------------------------------------------------------------------

    def register_job_type(self, definition: JobDefinition) -> None:
        if definition.job_id in self._jobs:
            raise ValueError(f"Job type {definition.job_id!r} already registered")
        self._jobs[definition.job_id] = definition

    def get_job(self, job_id: str) -> Optional[JobDefinition]:
        return self._jobs.get(job_id)

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    @property
    def slots(self) -> list[JobSlot]:
        return list(self._slots.values())

    def get_slot(self, slot_id: int) -> Optional[JobSlot]:
        return self._slots.get(slot_id)

    def slots_for_building(self, building_id: int) -> list[JobSlot]:
        return sorted(
            (s for s in self._slots.values() if s.building_id == building_id),
            key=lambda s: (s.job_id, s.index),
        )

    def slot_for_villager(self, villager_id: int) -> Optional[JobSlot]:
        slot_id = self._slot_of.get(villager_id)
        return self._slots.get(slot_id) if slot_id is not None else None

    def create_slots_for_building(self, building: Building) -> list[JobSlot]:
        """Create job slots for a completed building. Calling again is a no-op.

        Buildings still under construction get no slots; their count is fixed
        by the level the building has once it is complete.
        """
        if not building.built:
            return []
        if building.building_id in self._buildings_with_slots:
            return self.slots_for_building(building.building_id)
        self._buildings_with_slots.add(building.building_id)

        created: list[JobSlot] = []
        for job_id, base_slots in building.definition.jobs.items():
            if job_id not in self._jobs:
                continue
            for index in range(base_slots * building.level):
                slot = JobSlot(
                    slot_id=self._next_slot_id,
                    building_id=building.building_id,
                    building_type=building.building_type,
                    job_id=job_id,
                    index=index,
                )
                self._next_slot_id += 1
                self._slots[slot.slot_id] = slot
                created.append(slot)
        return created

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def assign(self, villager_id: int, slot_id: int) -> Outcome:
        villager = self._population.get(villager_id)
        if villager is None:
            return Outcome.failure(Failure.UNKNOWN_VILLAGER, f"no villager {villager_id}")
        slot = self._slots.get(slot_id)
        if slot is None:
            return Outcome.failure(Failure.UNKNOWN_SLOT, f"no slot {slot_id}")
        self.release_departed()
        if villager_id in self._slot_of:
            return Outcome.failure(Failure.ALREADY_ASSIGNED, f"{villager.name} already holds a job")
        if not slot.is_open:
            return Outcome.failure(Failure.SLOT_OCCUPIED, f"slot {slot_id} is taken")

        job = self._jobs[slot.job_id]
        blocker = assignment_blocker(villager, job.soldier_class)
        if blocker is not None:
            return blocker

        slot.occupant_id = villager_id
        self._slot_of[villager_id] = slot_id
        villager.status = VillagerStatus.WORKING
        villager.role = job.job_id
        villager.assigned_building_id = slot.building_id
        return Outcome.success(slot)

    def unassign(self, villager_id: int) -> Outcome:
        villager = self._population.get(villager_id)
        if villager is None:
            return Outcome.failure(Failure.UNKNOWN_VILLAGER, f"no villager {villager_id}")
        slot_id = self._slot_of.pop(villager_id, None)
        if slot_id is None:
            return Outcome.failure(Failure.NOT_ASSIGNED, f"{villager.name} holds no job")
        self._slots[slot_id].occupant_id = None
        villager.release()
        return Outcome.success(slot_id)

    def release_villager(self, villager_id: int) -> Outcome:
        """Free the slot of a villager who has left the roster."""
        slot_id = self._slot_of.pop(villager_id, None)
        if slot_id is None:
            return Outcome.failure(Failure.NOT_ASSIGNED, f"villager {villager_id} holds no job")
        self._slots[slot_id].occupant_id = None
        return Outcome.success(slot_id)

    def release_departed(self) -> list[int]:
        """Free every slot whose occupant is no longer on the roster."""
        departed = [vid for vid in self._slot_of if vid not in self._population]
        for vid in departed:
            self.release_villager(vid)
        return departed

    def assignment_targets(self) -> list[_SlotGroup]:
        groups: dict[tuple[int, str], list[JobSlot]] = defaultdict(list)
        for slot in self._slots.values():
            groups[(slot.building_id, slot.job_id)].append(slot)
        return [
            _SlotGroup(self, slots, self._jobs[job_id].soldier_class)
            for (_, job_id), slots in groups.items()
        ]

    def auto_assign(self, extra_targets: Iterable[AssignmentTarget] = ()) -> list[tuple[int, int]]:
        """Greedily place idle villagers, least-filled target first.

        Returns (villager_id, building_id) for every placement made.
        """
        self.release_departed()
        targets: list[AssignmentTarget] = [*self.assignment_targets(), *extra_targets]
        candidates = sorted(
            (v for v in self._population if not v.is_busy and v.is_available and v.can_work),
            key=lambda v: v.villager_id,
        )

        placed: list[tuple[int, int]] = []
        for villager in candidates:
            open_targets = [
                t for t in targets if t.filled < t.capacity and t.accepts(villager)
            ]
            if not open_targets:
                continue
            target = min(
                open_targets,
                key=lambda t: (t.filled / t.capacity, t.building_id, t.index),
            )
            if target.assign(villager.villager_id):
                placed.append((villager.villager_id, target.building_id))
        return placed

    # ------------------------------------------------------------------
    # Production
    # ------------------------------------------------------------------

    def _occupied(self) -> list[tuple[JobSlot, JobDefinition, Villager]]:
        self.release_departed()
        rows = []
        for slot in sorted(self._slots.values(), key=lambda s: s.slot_id):
            if slot.is_open:
                continue
            villager = self._population.get(slot.occupant_id)
            if villager is None:
                continue
            rows.append((slot, self._jobs[slot.job_id], villager))
        return rows

    def worker_output_multiplier(self, job: JobDefinition, villager: Villager, season: str, building_type: str) -> float:
        level = 0
        if job.required_skill:
            level = DEFAULT_TIERS.level_for(villager.skill_xp(job.required_skill))
        return (
            job.seasonal_multiplier(season)
            * (1.0 + JOB_SKILL_BONUS_PER_LEVEL * level)
            * self._modifiers.building_multiplier(building_type)
        )

    def calculate_production(self, season: str) -> dict[str, float]:
        totals: dict[str, float] = defaultdict(float)
        for slot, job, villager in self._occupied():
            multiplier = self.worker_output_multiplier(job, villager, season, slot.building_type)
            for resource, amount in job.production.items():
                totals[resource] += amount * multiplier
        return dict(totals)

    def calculate_consumption(self) -> dict[str, float]:
        # Raw inputs, no skill or modifier scaling
        totals: dict[str, float] = defaultdict(float)
        for _, job, _ in self._occupied():
            for resource, amount in job.consumption.items():
                totals[resource] += amount
        return dict(totals)

    def award_daily_experience(self) -> list[LevelUp]:
        """Each worker earns XP in their job's skill, plus a bonus when a co-worker knows more."""
        rows = [(s, j, v) for s, j, v in self._occupied() if j.skill_gained]
        before = {v.villager_id: v.skill_xp(j.skill_gained) for _, j, v in rows}

        level_ups: list[LevelUp] = []
        for slot, job, villager in rows:
            xp = JOB_DAILY_XP
            mine = before[villager.villager_id]
            has_mentor = any(
                other_slot.building_id == slot.building_id
                and other_job.skill_gained == job.skill_gained
                and before[other.villager_id] > mine
                for other_slot, other_job, other in rows
                if other.villager_id != villager.villager_id
            )
            if has_mentor:
                xp += MENTORSHIP_BONUS_XP
            outcome = self._population.award_experience(villager.villager_id, job.skill_gained, xp)
            if outcome.value is not None:
                level_ups.append(outcome.value)
        return level_ups

    def employment_summary(self, season: str) -> dict:
        total = len(self._slots)
        occupied = self._occupied()
        filled = len(occupied)
        capabilities = [worker_capability(v, task="production") for _, _, v in occupied]

        by_job: dict[str, dict[str, int]] = defaultdict(lambda: {"slots": 0, "filled": 0})
        for slot in self._slots.values():
            by_job[slot.job_id]["slots"] += 1
            if not slot.is_open:
                by_job[slot.job_id]["filled"] += 1

        return {
            "total_slots": total,
            "filled": filled,
            "vacancy_rate": (total - filled) / total if total else 0.0,
            "production": self.calculate_production(season),
            "consumption": self.calculate_consumption(),
            "average_capability": sum(capabilities) / len(capabilities) if capabilities else 0.0,
            "by_job": {job_id: dict(counts) for job_id, counts in by_job.items()},
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "slots": [s.to_dict() for s in self._slots.values()],
            "buildings_with_slots": sorted(self._buildings_with_slots),
            "next_slot_id": self._next_slot_id,
        }

    def load_dict(self, data: dict) -> None:
        self._slots = {}
        self._slot_of = {}
        for raw in data.get("slots", []):
            slot = JobSlot.from_dict(raw)
            self._slots[slot.slot_id] = slot
            if slot.occupant_id is not None:
                self._slot_of[slot.occupant_id] = slot.slot_id
        self._buildings_with_slots = set(data.get("buildings_with_slots", []))
        self._next_slot_id = int(data.get("next_slot_id", len(self._slots)))
