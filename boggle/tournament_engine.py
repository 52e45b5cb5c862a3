import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from .models import (
    db, utcnow, isoformat, display_name_for,
    Game, Player, User, Tournament, TournamentPlayer, TournamentGame
)
from .errors import StateConflictError, AuthorizationError, NotFoundError
from .game_engine import GameEngine
from shared.scoring import pick_winner
from shared.state_machine import (
    TournamentStateMachine, TournamentState, GameState, TransitionError
)

logger = logging.getLogger(__name__)


def generate_tournament_id() -> str:
    return f"tourn_{uuid.uuid4().hex[:12]}"


class TournamentEngine:
    """
    A tournament is a run of games sharing cumulative scores:
    lobby -> active -> finished, where finished means someone reached the
    target score.

    Like games, tournaments only move when polled. A tournament poll polls
    its current game; once that game is finished its scores are added to the
    totals exactly once, and then either a winner is declared or the players
    ready up for the next game.
    """

    def __init__(
        self,
        games: GameEngine,
        notifier=None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.games = games
        self.notifier = notifier
        self.clock = clock

    # ==================== Lookups ====================

    def get_tournament(self, tournament_id: str) -> Tournament:
        tournament = Tournament.query.filter_by(id=tournament_id).first()
        if not tournament:
            raise NotFoundError('Tournament not found')
        return tournament

    def list_open_tournaments(self, limit: int = 20) -> List[Dict]:
        rows = (
            db.session.query(Tournament, func.count(TournamentPlayer.id))
            .outerjoin(TournamentPlayer, TournamentPlayer.tournament_id == Tournament.id)
            .filter(Tournament.state.in_([TournamentState.LOBBY.value, TournamentState.ACTIVE.value]))
            .group_by(Tournament.id)
            .order_by(Tournament.created_at.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                'id': t.id,
                'state': t.state,
                'target_score': t.target_score,
                'timer_seconds': t.timer_seconds,
                'created_at': isoformat(t.created_at),
                'created_by': t.created_by,
                'player_count': count,
            }
            for t, count in rows
        ]

    def roster(self, tournament_id: str) -> List[TournamentPlayer]:
        """Players in join order."""
        return (
            TournamentPlayer.query
            .filter_by(tournament_id=tournament_id)
            .order_by(TournamentPlayer.joined_at.asc(), TournamentPlayer.id.asc())
            .all()
        )

    def player_rows(self, tournament_id: str) -> List[Dict]:
        """Players by total score, ties in join order."""
        rows = (
            db.session.query(TournamentPlayer, User.alias, User.email)
            .outerjoin(User, User.id == TournamentPlayer.user_id)
            .filter(TournamentPlayer.tournament_id == tournament_id)
            .order_by(
                TournamentPlayer.total_score.desc(),
                TournamentPlayer.joined_at.asc(),
                TournamentPlayer.id.asc()
            )
            .all()
        )
        return [
            dict(tp.to_dict(), display_name=display_name_for(alias, email))
            for tp, alias, email in rows
        ]

    # ==================== Lobby ====================

    def create_tournament(self, user_id: str, target_score: int, timer_seconds: int) -> Tournament:
        now = self.clock()
        tournament = Tournament(
            id=generate_tournament_id(),
            state=TournamentState.LOBBY.value,
            target_score=target_score,
            timer_seconds=timer_seconds,
            created_at=now,
            created_by=user_id,
            last_activity_at=now,
        )
        tournament.players.append(
            TournamentPlayer(user_id=user_id, total_score=0, ready=False, joined_at=now)
        )
        db.session.add(tournament)
        db.session.commit()
        logger.info(f"Tournament {tournament.id} created by {user_id} (target {target_score})")
        return tournament

    def join(self, tournament_id: str, user_id: str) -> bool:
        """Join a lobby. Returns False if the user was already in it."""
        tournament = self.get_tournament(tournament_id)
        sm = TournamentStateMachine.from_state_string(tournament.state)
        if not sm.can_perform('join'):
            raise StateConflictError('Tournament already started')

        if TournamentPlayer.query.filter_by(tournament_id=tournament_id, user_id=user_id).first():
            return False

        db.session.add(TournamentPlayer(
            tournament_id=tournament_id,
            user_id=user_id,
            total_score=0,
            ready=False,
            joined_at=self.clock(),
        ))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return False
        return True

    def leave(self, tournament_id: str, user_id: str) -> bool:
        """Leave a lobby; the last one out deletes it. Returns True if deleted."""
        tournament = self.get_tournament(tournament_id)
        sm = TournamentStateMachine.from_state_string(tournament.state)
        if not sm.can_perform('leave'):
            raise StateConflictError('Cannot leave active tournament')

        player = TournamentPlayer.query.filter_by(tournament_id=tournament_id, user_id=user_id).first()
        if player:
            db.session.delete(player)
            db.session.flush()

        deleted = False
        if TournamentPlayer.query.filter_by(tournament_id=tournament_id).count() == 0:
            db.session.delete(tournament)
            deleted = True

        db.session.commit()
        if deleted:
            logger.info(f"Tournament {tournament_id} deleted, last player left the lobby")
        return deleted

    def start(self, tournament_id: str, user_id: str) -> Game:
        """
        Start the tournament with its first game. The game skips its own
        lobby: everyone in the tournament is already in it and it is playing.
        """
        tournament = self.get_tournament(tournament_id)
        if tournament.created_by != user_id:
            raise AuthorizationError('Only creator can start tournament')

        sm = TournamentStateMachine.from_state_string(tournament.state)
        try:
            new_state = sm.transition('start')
        except TransitionError as e:
            raise StateConflictError('Tournament already started') from e

        now = self.clock()
        player_ids = [tp.user_id for tp in self.roster(tournament_id)]
        try:
            game = self._launch_game(tournament, player_ids, 1, now)
            claimed = (
                Tournament.query
                .filter_by(id=tournament_id, state=TournamentState.LOBBY.value)
                .update({
                    'state': new_state.value,
                    'current_game_id': game.id,
                    'last_activity_at': now,
                }, synchronize_session=False)
            )
            if not claimed:
                db.session.rollback()
                raise StateConflictError('Tournament already started')

            TournamentPlayer.query.filter_by(tournament_id=tournament_id).update(
                {'ready': False}, synchronize_session=False
            )
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise StateConflictError('Tournament already started') from e

        logger.info(f"Tournament {tournament_id} started with game {game.id}")
        return game

    def _launch_game(self, tournament: Tournament, player_ids: List[str],
                     game_number: int, now: datetime) -> Game:
        game = self.games.build_game(tournament.created_by, tournament.timer_seconds, player_ids, now)
        self.games.begin(game, now)
        db.session.add(TournamentGame(
            tournament_id=tournament.id,
            game_id=game.id,
            game_number=game_number,
        ))
        return game

    # ==================== Play ====================

    def set_ready(self, tournament_id: str, user_id: str, ready: Optional[bool] = None) -> bool:
        """Set (or with ready=None, toggle) a player's ready flag. Returns the new value."""
        tournament = self.get_tournament(tournament_id)
        sm = TournamentStateMachine.from_state_string(tournament.state)
        if not sm.can_perform('ready'):
            raise StateConflictError('Tournament not active')

        player = TournamentPlayer.query.filter_by(tournament_id=tournament_id, user_id=user_id).first()
        if not player:
            raise AuthorizationError('Not in this tournament')

        new_ready = (not player.ready) if ready is None else bool(ready)
        player.ready = new_ready
        tournament.last_activity_at = self.clock()
        db.session.commit()
        return new_ready

    def poll(self, tournament_id: str) -> Dict:
        """
        Current state of a tournament, driving it forward on the way: scores a
        finished game into the totals, declares a winner, or starts the next
        game once everyone is ready.
        """
        tournament = self.get_tournament(tournament_id)
        current_game = None
        between_games = False

        if tournament.state == TournamentState.ACTIVE.value and tournament.current_game_id:
            game_id = tournament.current_game_id
            current_game = self.games.poll(game_id)

            if current_game['game']['state'] == GameState.FINISHED.value:
                self._record_game_result(tournament, game_id)

                if tournament.state == TournamentState.ACTIVE.value:
                    between_games = True
                    next_game = self._advance_if_ready(tournament)
                    if next_game:
                        current_game = self.games.poll(next_game.id)
                        between_games = False

        return {
            'tournament': tournament.to_dict(),
            'players': self.player_rows(tournament.id),
            'games': [tg.to_dict() for tg in tournament.games],
            'current_game': current_game,
            'between_games': between_games,
        }

    def _record_game_result(self, tournament: Tournament, game_id: str) -> bool:
        """
        Add a finished game's scores to the tournament totals. The scored flag
        on the tournament/game link is claimed with a conditional update, so
        concurrent pollers add each game exactly once.
        """
        claimed = (
            TournamentGame.query
            .filter_by(tournament_id=tournament.id, game_id=game_id, scored=False)
            .update({'scored': True}, synchronize_session=False)
        )
        if not claimed:
            db.session.rollback()
            return False

        now = self.clock()
        game_scores = {p.user_id: p.score for p in Player.query.filter_by(game_id=game_id)}
        roster = self.roster(tournament.id)
        for tp in roster:
            tp.total_score += game_scores.get(tp.user_id, 0)

        winner = None
        if any(tp.total_score >= tournament.target_score for tp in roster):
            winner = pick_winner(roster)

        completed = False
        if winner:
            sm = TournamentStateMachine.from_state_string(tournament.state)
            new_state = sm.transition('complete')
            completed = bool(
                Tournament.query
                .filter_by(id=tournament.id, state=TournamentState.ACTIVE.value)
                .update({
                    'state': new_state.value,
                    'winner_id': winner.user_id,
                    'finished_at': now,
                    'last_activity_at': now,
                }, synchronize_session=False)
            )
        else:
            Tournament.query.filter_by(id=tournament.id).update(
                {'last_activity_at': now}, synchronize_session=False
            )

        db.session.commit()
        logger.info(f"Tournament {tournament.id}: recorded scores of game {game_id}")

        if completed:
            logger.info(f"Tournament {tournament.id} won by {winner.user_id}")
            self._announce_winner(tournament)
        return True

    def _advance_if_ready(self, tournament: Tournament) -> Optional[Game]:
        """
        Start the next game when every player is ready. The switch of
        current_game_id is a compare-and-swap, so only one poller creates it.
        """
        roster = self.roster(tournament.id)
        sm = TournamentStateMachine.from_state_string(tournament.state)
        try:
            sm.transition('advance', guard_context={'players': [tp.to_dict() for tp in roster]})
        except TransitionError:
            return None

        now = self.clock()
        previous_game_id = tournament.current_game_id
        game_number = TournamentGame.query.filter_by(tournament_id=tournament.id).count() + 1

        try:
            game = self._launch_game(tournament, [tp.user_id for tp in roster], game_number, now)
            claimed = (
                Tournament.query
                .filter_by(
                    id=tournament.id,
                    state=TournamentState.ACTIVE.value,
                    current_game_id=previous_game_id
                )
                .update({'current_game_id': game.id, 'last_activity_at': now},
                        synchronize_session=False)
            )
            if not claimed:
                db.session.rollback()
                return None

            TournamentPlayer.query.filter_by(tournament_id=tournament.id).update(
                {'ready': False}, synchronize_session=False
            )
            db.session.commit()
        except IntegrityError:
            # Another poller already inserted this game number
            db.session.rollback()
            return None

        logger.info(f"Tournament {tournament.id}: game {game_number} ({game.id}) started")
        return game

    def _announce_winner(self, tournament: Tournament) -> None:
        if not self.notifier:
            return
        rows = self.player_rows(tournament.id)
        standings = [(r['display_name'], r['total_score']) for r in rows]
        winner = next(
            ((r['display_name'], r['total_score']) for r in rows if r['user_id'] == tournament.winner_id),
            standings[0] if standings else ('Unknown', 0)
        )
        self.notifier.tournament_completed(
            tournament.id, standings, winner, len(tournament.games), tournament.target_score
        )

    # ==================== History ====================

    def get_history(self, user_id: str, limit: int = 50) -> List[Dict]:
        """Finished tournaments the user played in, most recently finished first."""
        played = db.select(TournamentPlayer.tournament_id).where(TournamentPlayer.user_id == user_id)
        tournaments = (
            Tournament.query
            .filter(Tournament.state == TournamentState.FINISHED.value, Tournament.id.in_(played))
            .order_by(Tournament.finished_at.desc())
            .limit(limit)
            .all()
        )

        history = []
        for t in tournaments:
            rows = self.player_rows(t.id)
            winner = next((r for r in rows if r['user_id'] == t.winner_id), None)
            history.append({
                'id': t.id,
                'target_score': t.target_score,
                'timer_seconds': t.timer_seconds,
                'created_at': isoformat(t.created_at),
                'finished_at': isoformat(t.finished_at),
                'winner_id': t.winner_id,
                'player_count': len(rows),
                'games_played': len(t.games),
                'winner': winner,
            })
        return history

    def get_summary(self, tournament_id: str) -> Dict:
        tournament = self.get_tournament(tournament_id)
        games = []
        for tg in tournament.games:
            games.append(dict(
                tg.to_dict(),
                start_time=isoformat(tg.game.start_time),
                timer_seconds=tg.game.timer_seconds,
                scores=self.games.standings(tg.game_id),
            ))
        return {
            'tournament': tournament.to_dict(),
            'players': self.player_rows(tournament.id),
            'games': games,
        }
