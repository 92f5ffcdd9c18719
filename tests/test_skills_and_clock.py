import pytest

from settlement_sim.agents.capability import age_factor, worker_capability
from settlement_sim.agents.skills import (
    DEFAULT_TIERS,
    SkillTierTable,
    add_experience,
    best_skill,
    get_tier_table,
    register_tier_table,
)
from settlement_sim.agents.villager import Gender, Villager
from settlement_sim.core.clock import SimClock


def test_tier_thresholds():
    assert DEFAULT_TIERS.tier_for(0).title == "Novice"
    assert DEFAULT_TIERS.tier_for(100).title == "Novice"
    assert DEFAULT_TIERS.tier_for(101).title == "Apprentice"
    assert DEFAULT_TIERS.tier_for(301).title == "Journeyman"
    assert DEFAULT_TIERS.tier_for(601).title == "Expert"
    assert DEFAULT_TIERS.tier_for(5000).title == "Grandmaster"
    assert DEFAULT_TIERS.max_level == 4


def test_duplicate_tier_table_raises():
    assert get_tier_table("default") is DEFAULT_TIERS
    with pytest.raises(ValueError):
        register_tier_table(SkillTierTable("default", [("Only", 0)]))


def test_tier_table_must_ascend_from_zero():
    with pytest.raises(ValueError):
        SkillTierTable("bad", [("A", 5), ("B", 10)])
    with pytest.raises(ValueError):
        SkillTierTable("worse", [("A", 0), ("B", 10), ("C", 3)])


def test_add_experience_never_decreases():
    v = Villager(1, "Bran", 60, Gender.MALE)
    assert add_experience(v, "masonry", -10) is None
    assert v.skill_xp("masonry") == 0

    level_up = add_experience(v, "masonry", 650)
    assert level_up.old_tier.title == "Novice"
    assert level_up.new_tier.title == "Expert"
    assert best_skill(v) == ("masonry", 650)


def test_age_factor_is_bell_shaped():
    assert age_factor(20) == pytest.approx(0.8)
    assert age_factor(30) == pytest.approx(0.95)
    assert age_factor(60) == pytest.approx(1.0)
    assert age_factor(120) == pytest.approx(0.98)
    assert age_factor(160) == pytest.approx(0.9)


def test_capability_floors_differ_by_task():
    v = Villager(1, "Iris", 60, Gender.FEMALE, health=0.0, happiness=0.0)
    assert worker_capability(v, task="construction") == pytest.approx(0.8 * 0.9)
    assert worker_capability(v, task="production") == pytest.approx(0.5)


def test_capability_ignores_irrelevant_skills():
    v = Villager(1, "Iris", 60, Gender.FEMALE, happiness=100.0, skills={"trading": 2000.0})
    assert worker_capability(v, relevant_skills=("carpentry",)) == pytest.approx(1.0)
    assert worker_capability(v, relevant_skills=("carpentry", "trading")) == pytest.approx(1.5)


def test_calendar_seasons():
    clock = SimClock()
    assert clock.season == "spring"
    assert clock.days_left_in_season == 30

    clock.day = 30
    assert clock.season == "sprummer"
    clock.day = 120
    assert clock.season == "winter"
    clock.day = 150
    assert clock.season == "winting"
    clock.day = 160
    assert clock.season == "spring"
    assert clock.days_left_in_season == 40
    clock.day = 199
    assert clock.season == "spring"
    assert clock.year == 0

    clock.advance()
    assert clock.day == 200
    assert clock.year == 1
    assert clock.day_of_year == 0
    assert clock.season == "spring"
