from collections import namedtuple, defaultdict
from typing import Dict, Iterable, List, Optional, Set

MIN_WORD_LENGTH = 3

Submission = namedtuple('Submission', ['user_id', 'word', 'points'])


def calculate_points(word: str) -> int:
    """
    Points for a word by length: 3-4 -> 1, 5 -> 2, 6 -> 3, 7 -> 5, 8+ -> 11.

    Words shorter than MIN_WORD_LENGTH score 0; callers reject them before
    scoring.
    """
    length = len(word)
    if length < MIN_WORD_LENGTH:
        return 0
    if length <= 4:
        return 1
    if length == 5:
        return 2
    if length == 6:
        return 3
    if length == 7:
        return 5
    return 11


def duplicate_words(submissions: Iterable[Submission]) -> Set[str]:
    """Words submitted by more than one distinct player."""
    submitters = defaultdict(set)
    for s in submissions:
        submitters[s.word].add(s.user_id)
    return {word for word, users in submitters.items() if len(users) > 1}


def final_scores(player_ids: Iterable[str], submissions: Iterable[Submission]) -> Dict[str, int]:
    """
    Sum each player's points, skipping any word that another player also found.
    Every player appears in the result, with 0 if they found nothing unique.
    """
    submissions = list(submissions)
    duplicates = duplicate_words(submissions)

    scores = {player_id: 0 for player_id in player_ids}
    for s in submissions:
        if s.word in duplicates:
            continue
        scores[s.user_id] = scores.get(s.user_id, 0) + s.points
    return scores


def annotate_words(submissions: Iterable[Submission]) -> Dict[str, List[dict]]:
    """Group submissions per player, flagging duplicates and what actually counted."""
    submissions = list(submissions)
    duplicates = duplicate_words(submissions)

    by_user: Dict[str, List[dict]] = {}
    for s in submissions:
        is_duplicate = s.word in duplicates
        by_user.setdefault(s.user_id, []).append({
            'word': s.word,
            'points': s.points,
            'actual_points': 0 if is_duplicate else s.points,
            'is_duplicate': is_duplicate,
        })
    return by_user


def pick_winner(players: Iterable, score_attr: str = 'total_score') -> Optional[object]:
    """
    Highest score wins; ties go to whoever joined first. Players that share a
    join time keep their input order, so pass them in insertion order.
    """
    ranked = sorted(players, key=lambda p: (-getattr(p, score_attr), p.joined_at))
    return ranked[0] if ranked else None
