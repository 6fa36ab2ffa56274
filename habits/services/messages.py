"""
Motivational copy shown after completions, rest days and day changes.

Selection is tiered: a new personal record wins, then an exact milestone,
then a band by streak length. Within a tier the variant is random; pass a
seeded ``random.Random`` to get a fixed choice.
"""
import random
from typing import Optional

NEW_RECORD = "new_record"
MILESTONE = "milestone"
BAND_STARTING = "starting"
BAND_BUILDING = "building"
BAND_BLAZING = "blazing"

NEW_RECORD_MESSAGES = (
    "New personal record! {streak} days of {name} and counting.",
    "You just beat your best: {streak} days of {name}!",
    "Record broken! {name} is now at {streak} days.",
)

MILESTONE_MESSAGES = {
    1: (
        "Day one of {name} is done. Every streak starts here.",
        "First step taken on {name}. See you tomorrow!",
    ),
    3: (
        "Three days of {name} in a row. A habit is forming.",
        "{name}: 3 days straight. Keep the rhythm going.",
    ),
    7: (
        "A full week of {name}! Incredible discipline.",
        "7 days of {name}. One week down!",
    ),
    14: (
        "Two weeks of {name} in a row. Unstoppable!",
        "{name}: 14 days straight. This is who you are now.",
    ),
    30: (
        "A whole month of {name}! You're a legend.",
        "30 days of {name}. That's a real habit.",
    ),
    100: (
        "100 days of {name}! Elite level reached.",
        "Triple digits: 100 days of {name}!",
    ),
}

BAND_MESSAGES = {
    BAND_STARTING: (
        "{name} done for today. {streak} day streak!",
        "Nice work on {name}. Keep it going tomorrow.",
        "{name} checked off. Small steps add up.",
    ),
    BAND_BUILDING: (
        "{streak} days of {name}. You're building momentum!",
        "{name} is sticking: {streak} days in a row.",
        "Another day, another {name}. {streak} and climbing.",
    ),
    BAND_BLAZING: (
        "{streak} days of {name}. You're on fire!",
        "{name} streak at {streak}. Nothing can stop you.",
        "{streak} days strong on {name}. Legendary consistency.",
    ),
}

NEW_DAY_MESSAGES = (
    "A new day has started. Your habits are waiting!",
    "Good morning! Fresh day, fresh chances to keep your streaks alive.",
    "It's a new day. Let's keep the momentum going.",
)

CELEBRATION_MESSAGES = {
    7: "A full week with \"{name}\"! Incredible discipline!",
    14: "Two weeks in a row with \"{name}\"! Unstoppable!",
    30: "A whole month with \"{name}\"! You're a legend!",
    100: "100 days with \"{name}\"! Elite level reached!",
}
CELEBRATION_DEFAULT = "{streak} days in a row with \"{name}\"! Keep it up!"


def message_tier(current_streak: int, is_new_record: bool) -> str:
    if is_new_record:
        return NEW_RECORD
    if current_streak in MILESTONE_MESSAGES:
        return MILESTONE
    if current_streak <= 5:
        return BAND_STARTING
    if current_streak <= 15:
        return BAND_BUILDING
    return BAND_BLAZING


def messages_for(current_streak: int, is_new_record: bool):
    """All templates the selector may pick from for these inputs."""
    tier = message_tier(current_streak, is_new_record)
    if tier == NEW_RECORD:
        return NEW_RECORD_MESSAGES
    if tier == MILESTONE:
        return MILESTONE_MESSAGES[current_streak]
    return BAND_MESSAGES[tier]


def select_message(habit_name: str, current_streak: int, is_new_record: bool,
                   rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    template = rng.choice(messages_for(current_streak, is_new_record))
    return template.format(name=habit_name, streak=current_streak)


def new_day_message(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return rng.choice(NEW_DAY_MESSAGES)


def rest_day_message(habit_name: str) -> str:
    return f"Rest day logged for {habit_name}. Recharge, your streak is safe."


def is_celebration(current_streak: int, is_new_record: bool) -> bool:
    return is_new_record or current_streak in CELEBRATION_MESSAGES


def celebration_message(habit_name: str, current_streak: int) -> str:
    template = CELEBRATION_MESSAGES.get(current_streak, CELEBRATION_DEFAULT)
    return template.format(name=habit_name, streak=current_streak)
