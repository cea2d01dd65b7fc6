"""
Archetype Classifier.

Maps a normalized TraitScoreVector to one travel personality archetype.

Rules are checked in order and the first match wins. The Comfort Traveler
rule ("everything low") also requires some signal, so a vector with no
signal at all (all zeros) falls through to the fallback archetype.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .traits import TraitScoreVector


class Archetype(str, Enum):
    """Recognized personality archetypes."""
    THRILL_SEEKER = "The Thrill Seeker"
    COMFORT_TRAVELER = "The Comfort Traveler"
    SOLO_EXPLORER = "The Solo Explorer"
    SOCIAL_BUTTERFLY = "The Social Butterfly"
    ADVENTURER = "The Adventurer"
    GROUP_PLANNER = "The Group Planner"
    BALANCED_WANDERER = "The Balanced Wanderer"
    ACTIVE_SOLOIST = "The Active Soloist"
    LEISURE_SOCIALIZER = "The Leisure Socializer"
    CURIOUS_TRAVELER = "The Curious Traveler"


FALLBACK_ARCHETYPE = Archetype.CURIOUS_TRAVELER


@dataclass(frozen=True)
class ArchetypeRule:
    """One threshold predicate over the trait vector."""
    archetype: Archetype
    description: str
    matches: Callable[[TraitScoreVector], bool]


def _moderate(score: int) -> bool:
    return 40 < score < 70


# Order is significant: first satisfied rule wins.
# Active Soloist is shadowed by Solo Explorer (same conditions, looser thresholds).
ARCHETYPE_RULES: tuple[ArchetypeRule, ...] = (
    ArchetypeRule(
        Archetype.THRILL_SEEKER,
        "high energy + high social + high adventure + high risk",
        lambda v: (
            v.energy_level > 70 and v.social_preference > 70
            and v.adventure_style > 70 and v.risk_tolerance > 70
        ),
    ),
    ArchetypeRule(
        Archetype.COMFORT_TRAVELER,
        "low energy + low social + low adventure + low risk (some signal)",
        lambda v: all(score < 40 for _, score in v) and any(score > 0 for _, score in v),
    ),
    ArchetypeRule(
        Archetype.SOLO_EXPLORER,
        "high energy + low social + high adventure",
        lambda v: v.energy_level > 60 and v.social_preference < 40 and v.adventure_style > 60,
    ),
    ArchetypeRule(
        Archetype.SOCIAL_BUTTERFLY,
        "low energy + high social + moderate adventure",
        lambda v: v.energy_level < 50 and v.social_preference > 70 and _moderate(v.adventure_style),
    ),
    ArchetypeRule(
        Archetype.ADVENTURER,
        "high adventure + high risk",
        lambda v: v.adventure_style > 70 and v.risk_tolerance > 70,
    ),
    ArchetypeRule(
        Archetype.GROUP_PLANNER,
        "high social + low risk + moderate energy",
        lambda v: v.social_preference > 70 and v.risk_tolerance < 40 and _moderate(v.energy_level),
    ),
    ArchetypeRule(
        Archetype.BALANCED_WANDERER,
        "moderate everything",
        lambda v: all(_moderate(score) for _, score in v),
    ),
    ArchetypeRule(
        Archetype.ACTIVE_SOLOIST,
        "high energy + high adventure + low social",
        lambda v: v.energy_level > 70 and v.adventure_style > 70 and v.social_preference < 40,
    ),
    ArchetypeRule(
        Archetype.LEISURE_SOCIALIZER,
        "low energy + high social + low risk",
        lambda v: v.energy_level < 40 and v.social_preference > 60 and v.risk_tolerance < 40,
    ),
)


def classify(vector: TraitScoreVector) -> Archetype:
    """
    Classify a trait vector into an archetype.

    Pure and total: always returns exactly one member of Archetype.
    """
    for rule in ARCHETYPE_RULES:
        if rule.matches(vector):
            return rule.archetype
    return FALLBACK_ARCHETYPE


# =============================================================================
# Results Presentation
# =============================================================================

TRAIT_DESCRIPTIONS = {
    "energy_level": (
        "You thrive on high-energy activities and packed itineraries",
        "You enjoy a balanced mix of activity and relaxation",
        "You prefer a relaxed pace with plenty of downtime",
    ),
    "social_preference": (
        "You love traveling with groups and meeting new people",
        "You enjoy both social activities and personal time",
        "You prefer solo adventures or intimate travel experiences",
    ),
    "adventure_style": (
        "You seek out unique, off-the-beaten-path experiences",
        "You balance familiar comforts with new discoveries",
        "You prefer well-planned, comfortable travel experiences",
    ),
    "risk_tolerance": (
        "You embrace challenges and thrive on adrenaline",
        "You enjoy occasional thrills with reasonable safety",
        "You prioritize safety and predictability in your travels",
    ),
}


def describe_traits(vector: TraitScoreVector) -> dict[str, str]:
    """Static description per trait (bands: >70, >40, else)."""
    descriptions = {}
    for trait, score in vector:
        high, mid, low = TRAIT_DESCRIPTIONS[trait.value]
        if score > 70:
            descriptions[trait.value] = high
        elif score > 40:
            descriptions[trait.value] = mid
        else:
            descriptions[trait.value] = low
    return descriptions


def map_to_travel_preferences(vector: TraitScoreVector) -> dict[str, str]:
    """
    Map trait scores to categorical travel preferences.

    Used to seed recommendation filters after onboarding.
    """
    energy = vector.energy_level
    social = vector.social_preference
    adventure = vector.adventure_style
    risk = vector.risk_tolerance

    if risk > 75 and energy > 70:
        adventure_style = "thrill_seeker"
    elif adventure > 70:
        adventure_style = "explorer"
    elif social > 70:
        adventure_style = "social"
    elif adventure > 40:
        adventure_style = "cultural"
    else:
        adventure_style = "relaxer"

    if risk > 70 or adventure > 80:
        budget_preference = "flexible"
    elif risk < 30:
        budget_preference = "luxury"
    elif adventure < 40:
        budget_preference = "moderate"
    else:
        budget_preference = "budget"

    if adventure > 75 and risk > 70:
        planning_style = "spontaneous"
    elif adventure > 60:
        planning_style = "flexible"
    elif adventure < 40 or risk < 40:
        planning_style = "detailed"
    else:
        planning_style = "structured"

    if social < 30:
        group_preference = "solo"
    elif social < 50:
        group_preference = "couple"
    elif social < 75:
        group_preference = "small_group"
    else:
        group_preference = "large_group"

    return {
        "adventure_style": adventure_style,
        "budget_preference": budget_preference,
        "planning_style": planning_style,
        "group_preference": group_preference,
    }
