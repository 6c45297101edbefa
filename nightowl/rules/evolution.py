"""
Avatar evolution ladder driven by cumulative active days.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class EvolutionStage:
    id: str
    name: str
    required_days: int
    greeting: str
    abilities: Tuple[str, ...] = field(default_factory=tuple)


STAGES: Tuple[EvolutionStage, ...] = (
    EvolutionStage(
        id="owlet",
        name="Owlet",
        required_days=0,
        greeting="Hi! I'm a little owlet and I'll help you sleep better.",
        abilities=("Basic sleep diary", "Simple tips", "SOS help"),
    ),
    EvolutionStage(
        id="young_owl",
        name="Young Owl",
        required_days=7,
        greeting="Good to see you again! A whole week together already.",
        abilities=(
            "Extended sleep analysis",
            "Personalised recommendations",
            "Relaxation techniques",
            "Mental rehearsal",
        ),
    ),
    EvolutionStage(
        id="wise_owl",
        name="Wise Owl",
        required_days=30,
        greeting="Hello, friend! A month of steady work, well done.",
        abilities=(
            "Deep pattern analysis",
            "Predictive recommendations",
            "Cognitive restructuring",
            "Personalised scenarios",
        ),
    ),
    EvolutionStage(
        id="master",
        name="Sleep Master Owl",
        required_days=66,
        greeting="Hello, Sleep Master! How can I help today?",
        abilities=(
            "Expert analysis",
            "Long-term trends",
            "Mentoring newcomers",
        ),
    ),
)


def stage_for_days(days_active: int) -> EvolutionStage:
    current = STAGES[0]
    for stage in STAGES:
        if days_active >= stage.required_days:
            current = stage
    return current


def stage_index(stage_id: str) -> int:
    for index, stage in enumerate(STAGES):
        if stage.id == stage_id:
            return index
    raise ValueError(f"Unknown evolution stage: {stage_id}")


def next_stage(days_active: int) -> Optional[EvolutionStage]:
    index = stage_index(stage_for_days(days_active).id)
    return STAGES[index + 1] if index + 1 < len(STAGES) else None


def unlocked_abilities(days_active: int) -> List[str]:
    index = stage_index(stage_for_days(days_active).id)
    return [ability for stage in STAGES[: index + 1] for ability in stage.abilities]


def locked_abilities(days_active: int) -> List[str]:
    index = stage_index(stage_for_days(days_active).id)
    return [ability for stage in STAGES[index + 1 :] for ability in stage.abilities]


def evolution_progress(days_active: int) -> dict:
    current = stage_for_days(days_active)
    upcoming = next_stage(days_active)
    if upcoming is None:
        return {
            "stage": current,
            "next_stage": None,
            "days_to_next": 0,
            "progress_percent": 100,
        }
    span = upcoming.required_days - current.required_days
    into_stage = days_active - current.required_days
    return {
        "stage": current,
        "next_stage": upcoming,
        "days_to_next": upcoming.required_days - days_active,
        "progress_percent": min(100, round(into_stage * 100 / span)),
    }


# (minimum active days, engagement level value), highest first
ENGAGEMENT_TIERS = (
    (66, "veteran"),
    (30, "habituated"),
    (7, "committed"),
    (3, "exploring"),
    (0, "new_user"),
)


def engagement_level_for_days(days_active: int) -> str:
    for minimum, level in ENGAGEMENT_TIERS:
        if days_active >= minimum:
            return level
    return "new_user"
