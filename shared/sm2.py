import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

# Review answers, Anki style
AGAIN = 0
HARD = 1
GOOD = 2
EASY = 3

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5


@dataclass
class SM2Result:
    interval: int  # days until next review
    repetitions: int
    ease_factor: float
    due_date: date


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_sm2(
    quality: int,
    repetitions: int,
    previous_interval: int,
    previous_ease_factor: float = DEFAULT_EASE_FACTOR,
    today: Optional[date] = None
) -> SM2Result:
    """
    Schedule the next review of a card with the SM-2 algorithm.

    Args:
        quality: 0 (Again), 1 (Hard), 2 (Good) or 3 (Easy)
        repetitions: consecutive successful reviews so far
        previous_interval: last interval in days
        previous_ease_factor: current easiness factor
        today: review date, defaults to date.today()

    Returns:
        SM2Result with the new interval, repetitions, ease factor and due date
    """
    if quality not in (AGAIN, HARD, GOOD, EASY):
        raise ValueError(f"Quality must be between 0 and 3, got {quality!r}")

    ease_factor = previous_ease_factor
    new_repetitions = repetitions
    interval = previous_interval

    # Ease only moves on a passing answer
    if quality >= GOOD:
        ease_factor = max(
            MIN_EASE_FACTOR,
            previous_ease_factor + (0.1 - (3 - quality) * (0.08 + (3 - quality) * 0.02))
        )

    if quality == AGAIN:
        new_repetitions = 0
        interval = 1
    elif quality == HARD:
        interval = max(1, int(math.floor(previous_interval * 1.2)))
    elif quality == GOOD:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            interval = 1
        elif new_repetitions == 2:
            interval = 6
        else:
            interval = _round_half_up(previous_interval * ease_factor)
    else:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            interval = 4
        else:
            interval = _round_half_up(previous_interval * ease_factor * 1.3)

    today = today or date.today()
    return SM2Result(
        interval=interval,
        repetitions=new_repetitions,
        ease_factor=ease_factor,
        due_date=today + timedelta(days=interval),
    )
