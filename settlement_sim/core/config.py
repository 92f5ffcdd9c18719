"""All tunable constants for the settlement simulation.

Every magic number in the codebase must reference this file.
"""

# =============================================================================
# TIME
# =============================================================================
DAYS_PER_YEAR: int = 200

# Season schedule in calendar order: (season, length in days).
# The final spring block wraps the year back around to day 0.
SEASON_SCHEDULE: list[tuple[str, int]] = [
    ("spring", 30),
    ("sprummer", 10),
    ("summer", 30),
    ("sumtumn", 10),
    ("autumn", 30),
    ("autinter", 10),
    ("winter", 30),
    ("winting", 10),
    ("spring", 40),
]

# =============================================================================
# VILLAGER - life stages (age in days, inclusive lower bounds)
# =============================================================================
INITIAL_POPULATION: int = 20
YOUNG_ADULT_AGE: int = 28
ADULT_AGE: int = 46
MIDDLE_AGED_AGE: int = 76
ELDER_AGE: int = 151
DEATH_AGE: int = 198

DEFAULT_HEALTH: float = 100.0
DEFAULT_HAPPINESS: float = 75.0
NEWBORN_HAPPINESS: float = 80.0

# =============================================================================
# BIRTHS
# =============================================================================
BREEDING_AGE_RANGE: tuple[int, int] = (46, 150)
BASE_BIRTH_CHANCE: float = 1.0 / 7.0
FOOD_ABUNDANT_BIRTH_BONUS: float = 0.5
FOOD_SCARCE_BIRTH_PENALTY: float = 0.5
BIRTH_BONUS_CLAMP: tuple[float, float] = (-0.5, 0.5)
TWIN_CHANCE: float = 0.01

FOOD_ABUNDANT_THRESHOLD: float = 500.0
FOOD_SCARCE_THRESHOLD: float = 50.0
DAILY_FOOD_UPKEEP: float = 1.0  # per villager

# =============================================================================
# DEATH RISK PROJECTION
# =============================================================================
# (bucket name, lowest age in bucket, highest age in bucket)
DEATH_RISK_BUCKETS: list[tuple[str, int, int]] = [
    ("imminent", 197, DEATH_AGE - 1),
    ("very_high", 190, 196),
    ("high", 180, 189),
    ("moderate", 170, 179),
    ("low", 160, 169),
]
# Horizon in days -> weight per bucket (same order as DEATH_RISK_BUCKETS)
DEATH_RISK_CURVES: dict[int, tuple[float, ...]] = {
    1: (1.0, 0.0, 0.0, 0.0, 0.0),
    30: (1.0, 0.9, 0.6, 0.3, 0.1),
}

# =============================================================================
# STARTING CONDITIONS
# =============================================================================
STARTING_STOCKPILE: dict[str, float] = {
    "food": 200.0,
    "wood": 50.0,
    "stone": 20.0,
}
# Working-age-weighted seeding distribution (mean, std, min, max) in days
SEED_AGE_DISTRIBUTION: tuple[float, float, int, int] = (70.0, 30.0, 28, 140)
SEED_CHILD_FRACTION: float = 0.15

# =============================================================================
# SKILLS
# =============================================================================
# (tier name, minimum XP)
SKILL_TIERS: list[tuple[str, int]] = [
    ("Novice", 0),
    ("Apprentice", 101),
    ("Journeyman", 301),
    ("Expert", 601),
    ("Grandmaster", 1001),
]
JOB_SKILL_BONUS_PER_LEVEL: float = 0.10
JOB_DAILY_XP: int = 1
MENTORSHIP_BONUS_XP: int = 1

# =============================================================================
# WORKER CAPABILITY
# =============================================================================
# task type -> (health floor, happiness floor)
CAPABILITY_FLOORS: dict[str, tuple[float, float]] = {
    "construction": (0.8, 0.9),
    "production": (0.5, 0.7),
}
# (upper age bound exclusive, factor); ages beyond the last bound use the final factor
AGE_FACTOR_CURVE: list[tuple[int, float]] = [
    (YOUNG_ADULT_AGE, 0.8),
    (ADULT_AGE, 0.95),
    (101, 1.0),
    (ELDER_AGE, 0.98),
]
ELDER_AGE_FACTOR: float = 0.9

# =============================================================================
# CONSTRUCTION
# =============================================================================
DEFAULT_CONSTRUCTION_POINTS: int = 25
LEVEL_POINT_MULTIPLIER: float = 0.3
CONSTRUCTION_TECH_DISCOUNT: float = 0.05
BUILDER_BASE_EFFICIENCY: float = 1.0
BUILDER_MIN_EFFICIENCY: float = 0.5
MAX_BUILDERS_PER_SITE: int = 8
COMPLETION_XP_PER_DIFFICULTY: int = 10
COMPLETION_TOLERANCE: float = 0.001

# Tier index -> flat efficiency added by that skill tier
BUILDER_TIER_BONUS: list[float] = [0.05, 0.1, 0.2, 0.3, 0.5]

# (headcount upper bound inclusive, teamwork multiplier)
TEAMWORK_STEPS: list[tuple[int, float]] = [
    (1, 1.0),
    (2, 1.05),
    (3, 1.10),
    (5, 1.15),
]
TEAMWORK_EXTRA_PER_HEAD: float = 0.01

# =============================================================================
# POPULATION CAP
# =============================================================================
HOUSING_LEVEL_MULTIPLIER: float = 0.15
TOWN_CENTER_CAPACITY: int = 3

# =============================================================================
# WEATHER
# =============================================================================
WEATHER_DURATION_DAYS: int = 1

# =============================================================================
# REPORTING
# =============================================================================
DASHBOARD_UPDATE_INTERVAL: int = 5
