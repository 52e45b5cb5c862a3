import random
from typing import List, Set

BOARD_SIZE = 4
CELL_COUNT = BOARD_SIZE * BOARD_SIZE

# Every cell used once, every cell a "QU"
MAX_WORD_LENGTH = CELL_COUNT * 2

# Classic Boggle dice: 16 dice with 6 faces each. "QU" is a single face.
BOGGLE_DICE = [
    ['A', 'A', 'E', 'E', 'G', 'N'],
    ['A', 'B', 'B', 'J', 'O', 'O'],
    ['A', 'C', 'H', 'O', 'P', 'S'],
    ['A', 'F', 'F', 'K', 'P', 'S'],
    ['A', 'O', 'O', 'T', 'T', 'W'],
    ['C', 'I', 'M', 'O', 'T', 'U'],
    ['D', 'E', 'I', 'L', 'R', 'X'],
    ['D', 'E', 'L', 'R', 'V', 'Y'],
    ['D', 'I', 'S', 'T', 'T', 'Y'],
    ['E', 'E', 'G', 'H', 'N', 'W'],
    ['E', 'E', 'I', 'N', 'S', 'U'],
    ['E', 'H', 'R', 'T', 'V', 'W'],
    ['E', 'I', 'O', 'S', 'S', 'T'],
    ['E', 'L', 'R', 'T', 'T', 'Y'],
    ['H', 'I', 'M', 'N', 'QU', 'U'],
    ['H', 'L', 'N', 'N', 'R', 'Z'],
]


def generate_board(rng=None) -> List[str]:
    """
    Roll a fresh board: shuffle the dice into the 16 cells, then roll each die.

    Returns 16 tokens in row-major order (index = row * 4 + col).
    """
    rng = rng or random
    dice = list(BOGGLE_DICE)
    rng.shuffle(dice)
    return [rng.choice(die) for die in dice]


def adjacent_positions(pos: int) -> List[int]:
    """Cells touching `pos` horizontally, vertically or diagonally."""
    row, col = divmod(pos, BOARD_SIZE)
    adjacent = []
    for r in range(max(0, row - 1), min(BOARD_SIZE - 1, row + 1) + 1):
        for c in range(max(0, col - 1), min(BOARD_SIZE - 1, col + 1) + 1):
            adj_pos = r * BOARD_SIZE + c
            if adj_pos != pos:
                adjacent.append(adj_pos)
    return adjacent


def can_form_word(word: str, board: List[str]) -> bool:
    """
    Check whether `word` can be traced on `board` through adjacent cells
    without visiting any cell twice. A "QU" cell consumes both letters.
    """
    upper_word = word.upper()
    if not upper_word:
        return False

    for start_pos in range(len(board)):
        if _search_word(upper_word, board, start_pos, set()):
            return True
    return False


def _search_word(word: str, board: List[str], pos: int, used: Set[int]) -> bool:
    if not word:
        return True
    if pos in used:
        return False

    token = board[pos].upper()
    # Multi-letter tokens ("QU") must match as a whole
    if not word.startswith(token):
        return False

    used.add(pos)
    try:
        return _search_adjacent(word[len(token):], board, pos, used)
    finally:
        used.discard(pos)


def _search_adjacent(remaining: str, board: List[str], current_pos: int, used: Set[int]) -> bool:
    if not remaining:
        return True

    for next_pos in adjacent_positions(current_pos):
        if _search_word(remaining, board, next_pos, used):
            return True
    return False
