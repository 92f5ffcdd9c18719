import numpy as np
import pytest

from settlement_sim.agents.population import PopulationLedger
from settlement_sim.agents.villager import Gender, LifeStage, VillagerStatus, life_stage_for
from settlement_sim.core.results import Failure


def _ledger(rng=None):
    return PopulationLedger(rng if rng is not None else np.random.default_rng(0))


def _add(ledger, age, gender=Gender.MALE, **attrs):
    return ledger.add_villager(name=f"V{len(ledger)}", age=age, gender=gender, **attrs).value


def test_life_stage_boundaries():
    assert life_stage_for(0) == LifeStage.CHILD
    assert life_stage_for(27) == LifeStage.CHILD
    assert life_stage_for(28) == LifeStage.YOUNG_ADULT
    assert life_stage_for(46) == LifeStage.ADULT
    assert life_stage_for(76) == LifeStage.MIDDLE_AGED
    assert life_stage_for(150) == LifeStage.MIDDLE_AGED
    assert life_stage_for(151) == LifeStage.ELDER
    assert life_stage_for(197) == LifeStage.ELDER
    assert life_stage_for(198) == LifeStage.DEAD


def test_advance_day_ages_everyone_by_one():
    ledger = _ledger()
    young = _add(ledger, 10)
    old = _add(ledger, 150)
    assert ledger.advance_day() == []
    assert young.age == 11
    assert old.age == 151
    assert old.life_stage == LifeStage.ELDER


def test_villager_removed_the_day_age_reaches_death_age():
    ledger = _ledger()
    doomed = _add(ledger, 196)
    survivor = _add(ledger, 20)

    assert ledger.advance_day() == []
    assert doomed.age == 197

    deaths = ledger.advance_day()
    assert len(deaths) == 1
    assert deaths[0].villager_id == doomed.villager_id
    assert deaths[0].age == 198
    assert ledger.get(doomed.villager_id) is None
    assert survivor.villager_id in ledger
    assert len(ledger) == 1


def test_death_emits_event(world):
    v = world.add(age=197)
    world.population.advance_day()
    died = [e for e in world.events if e.event_type == "villager_died"]
    assert len(died) == 1
    assert died[0].affected_villager_ids == [v.villager_id]
    assert died[0].data["age"] == 198


def test_negative_age_clamped_on_add():
    ledger = _ledger()
    v = _add(ledger, -5)
    assert v.age == 0


def test_ids_are_monotonic_and_duplicates_rejected():
    ledger = _ledger()
    a = _add(ledger, 30)
    b = _add(ledger, 30)
    assert b.villager_id == a.villager_id + 1

    dup = ledger.add_villager(name="X", age=30, gender=Gender.FEMALE, villager_id=a.villager_id)
    assert not dup
    assert dup.reason == Failure.DUPLICATE_ID


def test_remove_unknown_villager_is_a_failure_not_an_exception():
    ledger = _ledger()
    outcome = ledger.remove_villager(999)
    assert not outcome
    assert outcome.reason == Failure.UNKNOWN_VILLAGER


def test_zero_couples_means_zero_births(fixed_rng):
    ledger = _ledger(fixed_rng(0.0))
    for _ in range(4):
        _add(ledger, 60, Gender.MALE)
    growth = ledger.calculate_daily_growth(food_abundant=True, food_scarce=False)
    assert growth.eligible_couples == 0
    assert growth.births == 0


def test_couples_are_the_smaller_gender_count():
    ledger = _ledger()
    for _ in range(2):
        _add(ledger, 60, Gender.MALE)
    for _ in range(3):
        _add(ledger, 60, Gender.FEMALE)
    assert ledger.calculate_daily_growth(False, False).eligible_couples == 2


def test_parents_outside_breeding_age_or_away_do_not_count():
    ledger = _ledger()
    _add(ledger, 40, Gender.MALE)
    _add(ledger, 160, Gender.MALE)
    _add(ledger, 60, Gender.MALE, status=VillagerStatus.SICK)
    _add(ledger, 60, Gender.FEMALE)
    assert ledger.calculate_daily_growth(False, False).eligible_couples == 0


def test_birth_chance_bonus_is_clamped_and_cancels():
    ledger = _ledger()
    base = 1.0 / 7.0

    abundant = ledger.calculate_daily_growth(True, False)
    assert abundant.bonus == pytest.approx(0.5)
    assert abundant.birth_chance == pytest.approx(base * 1.5)

    scarce = ledger.calculate_daily_growth(False, True)
    assert scarce.bonus == pytest.approx(-0.5)
    assert scarce.birth_chance == pytest.approx(base * 0.5)

    both = ledger.calculate_daily_growth(True, True)
    assert both.bonus == pytest.approx(0.0)
    assert both.birth_chance == pytest.approx(base)


def test_every_couple_births_twins_when_rolls_are_lowest(fixed_rng):
    ledger = _ledger(fixed_rng(0.0))
    for _ in range(3):
        _add(ledger, 60, Gender.MALE)
        _add(ledger, 60, Gender.FEMALE)
    growth = ledger.calculate_daily_growth(False, False)
    assert growth.births == 6
    assert growth.twins == 3
    # Growth never creates villagers by itself
    assert len(ledger) == 6


def test_no_births_when_rolls_miss(fixed_rng):
    ledger = _ledger(fixed_rng(0.5))
    _add(ledger, 60, Gender.MALE)
    _add(ledger, 60, Gender.FEMALE)
    assert ledger.calculate_daily_growth(True, False).births == 0


def test_add_newborn_announces_birth(world):
    baby = world.population.add_newborn()
    assert baby.age == 0
    assert baby.life_stage == LifeStage.CHILD
    born = [e for e in world.events if e.event_type == "villager_born"]
    assert [e.affected_villager_ids for e in born] == [[baby.villager_id]]


def test_project_deaths_one_day_counts_only_imminent():
    ledger = _ledger()
    for age in (197, 192, 185, 175, 165, 100):
        _add(ledger, age)
    projection = ledger.project_deaths(1)
    assert projection.total == 1
    assert projection.by_bucket["imminent"] == 1
    assert len(ledger) == 6


def test_project_deaths_thirty_days_uses_ceiling_per_bucket():
    ledger = _ledger()
    for age in (197, 192, 185, 175, 165, 100):
        _add(ledger, age)
    projection = ledger.project_deaths(30)
    assert projection.by_bucket == {
        "imminent": 1,
        "very_high": 1,
        "high": 1,
        "moderate": 1,
        "low": 1,
    }
    assert projection.total == 5


def test_project_deaths_ceiling_ignores_float_noise():
    ledger = _ledger()
    for _ in range(10):
        _add(ledger, 175)
    assert ledger.project_deaths(30).by_bucket["moderate"] == 3


def test_project_deaths_other_horizon_derives_from_age_span():
    ledger = _ledger()
    for age in (191, 195):
        _add(ledger, age)
    # Within 5 days only ages 193+ reach 198: 4 of the 7 ages in 190-196
    projection = ledger.project_deaths(5)
    assert projection.by_bucket["very_high"] == 2  # ceil(2 * 4/7)
    assert projection.by_bucket["low"] == 0


def test_award_experience_returns_level_up_and_emits(world):
    v = world.add(age=60)
    outcome = world.population.award_experience(v.villager_id, "farming", 100)
    assert outcome and outcome.value is None

    outcome = world.population.award_experience(v.villager_id, "farming", 1)
    assert outcome.value is not None
    assert outcome.value.new_tier.title == "Apprentice"
    ups = [e for e in world.events if e.event_type == "skill_level_up"]
    assert len(ups) == 1
    assert ups[0].data["skill"] == "farming"


def test_award_experience_unknown_villager(world):
    outcome = world.population.award_experience(42, "farming", 5)
    assert outcome.reason == Failure.UNKNOWN_VILLAGER


def test_summary_reports_demographics():
    ledger = _ledger()
    _add(ledger, 10, Gender.MALE)
    _add(ledger, 60, Gender.FEMALE)
    _add(ledger, 197, Gender.FEMALE)
    summary = ledger.summary()
    assert summary["total"] == 3
    assert summary["by_life_stage"]["child"] == 1
    assert summary["demographics"]["males"] == 1
    assert summary["demographics"]["females"] == 2
    assert summary["demographics"]["working_age"] == 1
    assert summary["demographics"]["average_age"] == pytest.approx((10 + 60 + 197) / 3)
    assert summary["death_projection"]["tomorrow"] == 1


def test_generate_initial_population_is_working_age_heavy():
    ledger = _ledger(np.random.default_rng(11))
    created = ledger.generate_initial_population(200)
    assert len(created) == 200
    assert all(0 <= v.age <= 140 for v in created)
    working = sum(1 for v in created if v.can_work)
    assert working > 120


@pytest.mark.parametrize(
    "attrs",
    [{"mood": 5}, {"status": "napping"}, {"health": "robust"}, {"skills": 3}],
)
def test_add_villager_rejects_bad_attributes(attrs):
    ledger = _ledger()
    outcome = ledger.add_villager(name="x", age=30, gender=Gender.FEMALE, **attrs)
    assert not outcome
    assert outcome.reason == Failure.INVALID_ATTRIBUTE
    assert len(ledger) == 0
    assert ledger.next_id == 0
