from dataclasses import dataclass
from typing import Iterable

# cumulative streak bonuses for the experience total, earned on reaching
# the threshold; the first one starts after day 3
STREAK_BONUS_TIERS = (
    (4, 15),
    (7, 35),
    (14, 50),
    (30, 100),
)
LONG_STREAK_BLOCK_BONUS = 25

# bonuses for a single completion, earned on reaching the threshold
GAIN_BONUS_TIERS = (
    (7, 5),
    (14, 10),
    (30, 20),
)
GAIN_BLOCK_BONUS = 5

BASE_XP_PER_COMPLETION = 10
XP_PER_LEVEL = 100


@dataclass(frozen=True)
class XPAwardBreakdown:
    base: int
    streak_bonus: int

    @property
    def total(self):
        return self.base + self.streak_bonus


def _full_weeks_beyond(streak: int, threshold: int) -> int:
    if streak <= threshold:
        return 0
    return (streak - threshold) // 7


def compute_experience(total_completions: int, current_streak: int) -> int:
    base = max(total_completions, 0) * BASE_XP_PER_COMPLETION

    streak_bonus = sum(bonus for threshold, bonus in STREAK_BONUS_TIERS if current_streak >= threshold)
    streak_bonus += LONG_STREAK_BLOCK_BONUS * _full_weeks_beyond(current_streak, 30)

    return base + streak_bonus


def compute_level(experience: int) -> int:
    """
    Flat curve: every 100 XP is one level, starting at level 1.
        0..99   -> 1
        100..199 -> 2
    """
    return max(experience, 0) // XP_PER_LEVEL + 1


def compute_xp_award(*, current_streak: int) -> XPAwardBreakdown:
    """XP shown when a single completion lands; independent of the total."""
    streak_bonus = sum(bonus for threshold, bonus in GAIN_BONUS_TIERS if current_streak >= threshold)
    streak_bonus += GAIN_BLOCK_BONUS * _full_weeks_beyond(current_streak, 30)
    return XPAwardBreakdown(base=BASE_XP_PER_COMPLETION, streak_bonus=streak_bonus)


def compute_experience_gained(current_streak: int) -> int:
    return compute_xp_award(current_streak=current_streak).total


@dataclass(frozen=True)
class ProfileSummary:
    total_habits: int
    active_streaks: int
    best_streak: int
    total_completions: int
    total_experience: int
    level: int
    achievements: int


def count_achievements(*, total_completions: int, best_streak: int) -> int:
    achievements = 0
    if total_completions > 0:
        achievements += 1
    if best_streak >= 7:
        achievements += 1
    if best_streak >= 30:
        achievements += 1
    if total_completions >= 50:
        achievements += 1
    if total_completions >= 200:
        achievements += 1
    return achievements


def summarize_profile(views: Iterable) -> ProfileSummary:
    """Roll per-habit views up into the numbers shown on a user's profile."""
    total_habits = 0
    active_streaks = 0
    best_streak = 0
    total_completions = 0
    total_experience = 0

    for view in views:
        stats = view.stats
        total_habits += 1
        total_completions += stats.total_completions
        total_experience += stats.experience
        if stats.current_streak > 0:
            active_streaks += 1
        if stats.best_streak > best_streak:
            best_streak = stats.best_streak

    return ProfileSummary(
        total_habits=total_habits,
        active_streaks=active_streaks,
        best_streak=best_streak,
        total_completions=total_completions,
        total_experience=total_experience,
        level=compute_level(total_experience),
        achievements=count_achievements(total_completions=total_completions, best_streak=best_streak),
    )
