import logging
from typing import Iterable, Set

from sqlalchemy.exc import SQLAlchemyError

from .models import db, DictionaryWord
from .errors import UnexpectedError
from shared.board import MAX_WORD_LENGTH
from shared.scoring import MIN_WORD_LENGTH

logger = logging.getLogger(__name__)


def normalize_word(word: str) -> str:
    return word.strip().upper()


class TableDictionary:
    """Word list stored in the boggle_dictionary table."""

    def contains(self, word: str) -> bool:
        try:
            row = DictionaryWord.query.filter_by(word=normalize_word(word)).first()
        except SQLAlchemyError as e:
            logger.error(f"Dictionary lookup failed: {e}")
            raise UnexpectedError('Dictionary unavailable') from e
        return row is not None


class WordSetDictionary:
    """Word list held in memory."""

    def __init__(self, words: Iterable[str]):
        self.words: Set[str] = {normalize_word(w) for w in words}

    def contains(self, word: str) -> bool:
        return normalize_word(word) in self.words


def load_words(lines: Iterable[str], batch_size: int = 5000) -> int:
    """
    Load a word list (one word per line) into the dictionary table.

    Skips blanks, non-alphabetic entries, words too short to ever score or
    too long to fit on a board, and words already present. Returns the
    number of words added.
    """
    existing = {w for (w,) in db.session.query(DictionaryWord.word)}
    added = 0
    pending = 0

    for line in lines:
        word = normalize_word(line)
        if not MIN_WORD_LENGTH <= len(word) <= MAX_WORD_LENGTH:
            continue
        if not word.isalpha() or word in existing:
            continue
        db.session.add(DictionaryWord(word=word))
        existing.add(word)
        added += 1
        pending += 1
        if pending >= batch_size:
            db.session.commit()
            pending = 0

    db.session.commit()
    return added
