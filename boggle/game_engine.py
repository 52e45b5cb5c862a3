import json
import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from .models import db, utcnow, isoformat, display_name_for, Game, Player, Word, User
from .errors import ValidationError, StateConflictError, AuthorizationError, NotFoundError
from shared.board import generate_board, can_form_word, MAX_WORD_LENGTH
from shared.scoring import (
    Submission, MIN_WORD_LENGTH, calculate_points, final_scores, annotate_words
)
from shared.state_machine import GameStateMachine, GameState, TransitionError

logger = logging.getLogger(__name__)


def generate_game_id() -> str:
    return f"game_{uuid.uuid4().hex[:12]}"


def elapsed_ms(start: datetime, now: datetime) -> int:
    return int((now - start).total_seconds() * 1000)


class GameEngine:
    """
    Lifecycle of a single timed game: lobby -> playing -> finished.

    There is no timer behind a game. Time only passes when someone polls:
    the poll that first notices the clock has run out flips the game to
    finished with a conditional update, and only that poll scores it.
    """

    def __init__(
        self,
        dictionary,
        notifier=None,
        clock: Callable[[], datetime] = utcnow,
        board_factory: Callable[[], List[str]] = generate_board
    ):
        self.dictionary = dictionary
        self.notifier = notifier
        self.clock = clock
        self.board_factory = board_factory

    # ==================== Lookups ====================

    def get_game(self, game_id: str) -> Game:
        game = Game.query.filter_by(id=game_id).first()
        if not game:
            raise NotFoundError('Game not found')
        return game

    def list_open_games(self, limit: int = 20) -> List[Dict]:
        """Games still in lobby or being played, newest first."""
        rows = (
            db.session.query(Game, func.count(Player.id))
            .outerjoin(Player, Player.game_id == Game.id)
            .filter(Game.state.in_([GameState.LOBBY.value, GameState.PLAYING.value]))
            .group_by(Game.id)
            .order_by(Game.created_at.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                'id': game.id,
                'state': game.state,
                'timer_seconds': game.timer_seconds,
                'start_time': isoformat(game.start_time),
                'created_at': isoformat(game.created_at),
                'created_by': game.created_by,
                'player_count': count,
            }
            for game, count in rows
        ]

    def standings(self, game_id: str) -> List[Dict]:
        """Players by score, ties in join order."""
        rows = (
            db.session.query(Player, User.alias, User.email)
            .outerjoin(User, User.id == Player.user_id)
            .filter(Player.game_id == game_id)
            .order_by(Player.score.desc(), Player.joined_at.asc(), Player.id.asc())
            .all()
        )
        return [
            dict(player.to_dict(), display_name=display_name_for(alias, email))
            for player, alias, email in rows
        ]

    def is_time_up(self, game: Game, now: datetime) -> bool:
        if game.start_time is None:
            return False
        return elapsed_ms(game.start_time, now) >= game.timer_seconds * 1000

    def time_remaining_ms(self, game: Game, now: datetime) -> Optional[int]:
        if game.start_time is None:
            return None
        return max(0, game.timer_seconds * 1000 - elapsed_ms(game.start_time, now))

    # ==================== Creation ====================

    def build_game(
        self,
        created_by: str,
        timer_seconds: int,
        player_ids: Iterable[str],
        now: datetime = None
    ) -> Game:
        """
        Add a new lobby game and its players to the session without committing,
        so callers can commit it together with their own rows.
        """
        now = now or self.clock()
        game = Game(
            id=generate_game_id(),
            state=GameState.LOBBY.value,
            board=json.dumps(self.board_factory()),
            timer_seconds=timer_seconds,
            created_at=now,
            created_by=created_by,
        )
        for user_id in dict.fromkeys(player_ids):
            game.players.append(Player(user_id=user_id, score=0, joined_at=now))
        db.session.add(game)
        return game

    def begin(self, game: Game, now: datetime = None) -> Game:
        """Move a game that is not yet persisted straight to playing."""
        sm = GameStateMachine.from_state_string(game.state)
        game.state = sm.transition('start').value
        game.start_time = now or self.clock()
        return game

    def create_game(self, user_id: str, timer_seconds: int) -> Game:
        game = self.build_game(user_id, timer_seconds, [user_id])
        db.session.commit()
        logger.info(f"Game {game.id} created by {user_id} ({timer_seconds}s)")
        return game

    # ==================== Lobby ====================

    def join(self, game_id: str, user_id: str) -> bool:
        """Join a lobby. Returns False if the user was already in it."""
        game = self.get_game(game_id)
        sm = GameStateMachine.from_state_string(game.state)
        if not sm.can_perform('join'):
            raise StateConflictError('Game already started')

        if Player.query.filter_by(game_id=game_id, user_id=user_id).first():
            return False

        db.session.add(Player(game_id=game_id, user_id=user_id, score=0, joined_at=self.clock()))
        try:
            db.session.commit()
        except IntegrityError:
            # Lost a race against our own concurrent join
            db.session.rollback()
            return False
        return True

    def leave(self, game_id: str, user_id: str) -> bool:
        """
        Leave a lobby. The last player out deletes the game, since games that
        never started keep no history. Returns True if the game was deleted.
        """
        game = self.get_game(game_id)
        sm = GameStateMachine.from_state_string(game.state)
        if not sm.can_perform('leave'):
            raise StateConflictError('Cannot leave active game')

        player = Player.query.filter_by(game_id=game_id, user_id=user_id).first()
        if player:
            db.session.delete(player)
            db.session.flush()

        deleted = False
        if Player.query.filter_by(game_id=game_id).count() == 0:
            db.session.delete(game)
            deleted = True

        db.session.commit()
        if deleted:
            logger.info(f"Game {game_id} deleted, last player left the lobby")
        return deleted

    def start(self, game_id: str, user_id: str) -> Game:
        game = self.get_game(game_id)
        if game.created_by != user_id:
            raise AuthorizationError('Only creator can start game')

        sm = GameStateMachine.from_state_string(game.state)
        try:
            new_state = sm.transition('start')
        except TransitionError as e:
            raise StateConflictError('Game already started') from e

        now = self.clock()
        claimed = (
            Game.query
            .filter_by(id=game_id, state=GameState.LOBBY.value)
            .update({'state': new_state.value, 'start_time': now}, synchronize_session=False)
        )
        if not claimed:
            db.session.rollback()
            raise StateConflictError('Game already started')

        db.session.commit()
        logger.info(f"Game {game_id} started")
        return game

    # ==================== Play ====================

    def submit_word(self, game_id: str, user_id: str, word) -> Word:
        """
        Record a word for a player. Points are stored now, but only count
        towards the player's score when the game is finalized.
        """
        if not isinstance(word, str) or not word.strip():
            raise ValidationError('Invalid word')

        upper_word = word.strip().upper()
        if len(upper_word) < MIN_WORD_LENGTH:
            raise ValidationError(f'Word must be at least {MIN_WORD_LENGTH} letters')
        if len(upper_word) > MAX_WORD_LENGTH:
            raise ValidationError('Word is too long')

        game = self.get_game(game_id)
        sm = GameStateMachine.from_state_string(game.state)
        if not sm.can_perform('submit'):
            raise StateConflictError('Game not in progress')

        now = self.clock()
        if self.is_time_up(game, now):
            raise StateConflictError('Time is up')

        if not Player.query.filter_by(game_id=game_id, user_id=user_id).first():
            raise AuthorizationError('Not in this game')

        if Word.query.filter_by(game_id=game_id, user_id=user_id, word=upper_word).first():
            raise ValidationError('Word already submitted')

        if not self.dictionary.contains(upper_word):
            raise ValidationError('Not a valid word')

        if not can_form_word(upper_word, game.cells):
            raise ValidationError('Cannot form word on board')

        entry = Word(
            game_id=game_id,
            user_id=user_id,
            word=upper_word,
            points=calculate_points(upper_word),
            submitted_at=now,
        )
        db.session.add(entry)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ValidationError('Word already submitted') from e
        return entry

    def poll(self, game_id: str) -> Dict:
        """
        Current state of a game. Also finishes and scores the game when its
        time has run out.
        """
        game = self.get_game(game_id)
        now = self.clock()

        if game.state == GameState.PLAYING.value and self.is_time_up(game, now):
            self._finish(game)

        return self._state_payload(game, now)

    def _finish(self, game: Game) -> bool:
        """
        playing -> finished, guarded by the previous state. Returns True only
        for the caller whose update actually flipped the row; that caller
        alone computes final scores.
        """
        sm = GameStateMachine.from_state_string(game.state)
        new_state = sm.transition('finish')

        won = (
            Game.query
            .filter_by(id=game.id, state=GameState.PLAYING.value)
            .update({'state': new_state.value}, synchronize_session=False)
        )
        if not won:
            db.session.rollback()
            return False

        self._finalize_scores(game.id)
        db.session.commit()
        logger.info(f"Game {game.id} finished and scored")

        if self.notifier:
            standings = self.standings(game.id)
            self.notifier.game_finished(
                game.id, [(p['display_name'], p['score']) for p in standings]
            )
        return True

    def _finalize_scores(self, game_id: str) -> Dict[str, int]:
        players = Player.query.filter_by(game_id=game_id).all()
        words = Word.query.filter_by(game_id=game_id).all()

        scores = final_scores(
            [p.user_id for p in players],
            [Submission(w.user_id, w.word, w.points) for w in words]
        )
        for player in players:
            player.score = scores[player.user_id]
        return scores

    def _state_payload(self, game: Game, now: datetime) -> Dict:
        players = self.standings(game.id)

        all_words = None
        if game.state == GameState.FINISHED.value:
            words = (
                Word.query.filter_by(game_id=game.id)
                .order_by(Word.submitted_at.asc(), Word.id.asc())
                .all()
            )
            by_user = annotate_words(Submission(w.user_id, w.word, w.points) for w in words)
            final = {p['user_id']: p['score'] for p in players}
            all_words = [
                {'user_id': user_id, 'words': entries, 'final_score': final.get(user_id, 0)}
                for user_id, entries in by_user.items()
            ]

        return {
            'game': game.to_dict(),
            'players': players,
            'all_words': all_words,
            'time_remaining_ms': self.time_remaining_ms(game, now),
        }

    # ==================== History ====================

    def get_history(self, user_id: str, limit: int = 50) -> List[Dict]:
        """Finished games the user played in, newest first, with each winner."""
        played = db.select(Player.game_id).where(Player.user_id == user_id)
        rows = (
            db.session.query(Game, func.count(Player.id))
            .join(Player, Player.game_id == Game.id)
            .filter(Game.state == GameState.FINISHED.value, Game.id.in_(played))
            .group_by(Game.id)
            .order_by(Game.created_at.desc())
            .limit(limit)
            .all()
        )

        history = []
        for game, count in rows:
            standings = self.standings(game.id)
            history.append({
                'id': game.id,
                'created_at': isoformat(game.created_at),
                'start_time': isoformat(game.start_time),
                'timer_seconds': game.timer_seconds,
                'player_count': count,
                'winner': standings[0] if standings else None,
            })
        return history
