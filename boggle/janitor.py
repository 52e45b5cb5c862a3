"""
Periodic cleanup of games and tournaments nobody is driving any more.

Games and tournaments only advance when polled, so rows whose players walked
away sit in their last state forever. The sweep is run from cron (``flask
janitor`` or ``python run.py janitor``), never from a request.

The rules are plain functions over row snapshots; ``Janitor.sweep`` fetches
the candidates and applies them.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .models import db, utcnow, Game, Tournament, TournamentPlayer
from shared.scoring import pick_winner
from shared.state_machine import GameState, TournamentState

logger = logging.getLogger(__name__)


def _age_seconds(since: Optional[datetime], now: datetime) -> Optional[float]:
    if since is None:
        return None
    return (now - since).total_seconds()


def expired_lobbies(
    rows: Iterable, now: datetime, ttl_seconds: int, lobby_state: str
) -> List[str]:
    """Ids of rows still in lobby_state and created more than ttl_seconds ago."""
    expired = []
    for row in rows:
        if row.state != lobby_state:
            continue
        age = _age_seconds(row.created_at, now)
        if age is not None and age > ttl_seconds:
            expired.append(row.id)
    return expired


def stuck_games(rows: Iterable, now: datetime, grace_factor: float) -> List[str]:
    """Ids of playing games running longer than grace_factor times their timer."""
    stuck = []
    for row in rows:
        if row.state != GameState.PLAYING.value:
            continue
        elapsed = _age_seconds(row.start_time, now)
        if elapsed is not None and elapsed > grace_factor * row.timer_seconds:
            stuck.append(row.id)
    return stuck


def idle_tournaments(rows: Iterable, now: datetime, idle_seconds: int) -> List[str]:
    """Ids of active tournaments with no activity for more than idle_seconds."""
    idle = []
    for row in rows:
        if row.state != TournamentState.ACTIVE.value:
            continue
        quiet = _age_seconds(row.last_activity_at or row.created_at, now)
        if quiet is not None and quiet > idle_seconds:
            idle.append(row.id)
    return idle


class Janitor:
    def __init__(
        self,
        lobby_ttl_seconds: int = 600,
        grace_factor: float = 2,
        idle_seconds: int = 3600,
        clock: Callable[[], datetime] = utcnow
    ):
        self.lobby_ttl_seconds = lobby_ttl_seconds
        self.grace_factor = grace_factor
        self.idle_seconds = idle_seconds
        self.clock = clock

    @classmethod
    def from_config(cls, cfg) -> "Janitor":
        return cls(
            lobby_ttl_seconds=cfg.get('LOBBY_TTL_SECONDS', 600),
            grace_factor=cfg.get('PLAYING_GRACE_FACTOR', 2),
            idle_seconds=cfg.get('TOURNAMENT_IDLE_SECONDS', 3600),
        )

    def sweep(self) -> Dict[str, int]:
        now = self.clock()
        report = {
            'lobby_games_deleted': self._delete_lobby_games(now),
            'stuck_games_finished': self._finish_stuck_games(now),
            'lobby_tournaments_deleted': self._delete_lobby_tournaments(now),
            'idle_tournaments_finished': self._finish_idle_tournaments(now),
        }
        logger.info(f"Janitor sweep complete: {report}")
        return report

    def _delete_lobby_games(self, now: datetime) -> int:
        lobbies = Game.query.filter_by(state=GameState.LOBBY.value).all()
        expired = set(expired_lobbies(
            lobbies, now, self.lobby_ttl_seconds, GameState.LOBBY.value
        ))
        for game in lobbies:
            if game.id in expired:
                # ORM delete so players go with the game
                db.session.delete(game)
        db.session.commit()
        return len(expired)

    def _finish_stuck_games(self, now: datetime) -> int:
        playing = Game.query.filter_by(state=GameState.PLAYING.value).all()
        finished = 0
        for game_id in stuck_games(playing, now, self.grace_factor):
            # Scores are left as they are; only a poll scores a game
            finished += (
                Game.query
                .filter_by(id=game_id, state=GameState.PLAYING.value)
                .update({'state': GameState.FINISHED.value}, synchronize_session=False)
            )
            logger.warning(f"Game {game_id} stuck in play, forced to finished without scoring")
        db.session.commit()
        return finished

    def _delete_lobby_tournaments(self, now: datetime) -> int:
        lobbies = Tournament.query.filter_by(state=TournamentState.LOBBY.value).all()
        expired = set(expired_lobbies(
            lobbies, now, self.lobby_ttl_seconds, TournamentState.LOBBY.value
        ))
        for tournament in lobbies:
            if tournament.id in expired:
                db.session.delete(tournament)
        db.session.commit()
        return len(expired)

    def _finish_idle_tournaments(self, now: datetime) -> int:
        active = Tournament.query.filter_by(state=TournamentState.ACTIVE.value).all()
        finished = 0
        for tournament_id in idle_tournaments(active, now, self.idle_seconds):
            roster = (
                TournamentPlayer.query
                .filter_by(tournament_id=tournament_id)
                .order_by(TournamentPlayer.joined_at.asc(), TournamentPlayer.id.asc())
                .all()
            )
            leader = pick_winner(roster)
            finished += (
                Tournament.query
                .filter_by(id=tournament_id, state=TournamentState.ACTIVE.value)
                .update({
                    'state': TournamentState.FINISHED.value,
                    'winner_id': leader.user_id if leader else None,
                    'finished_at': now,
                }, synchronize_session=False)
            )
            logger.warning(
                f"Tournament {tournament_id} idle, finished with winner "
                f"{leader.user_id if leader else 'nobody'}"
            )
        db.session.commit()
        return finished
