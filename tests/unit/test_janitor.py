"""
Unit tests for the janitor rules and sweep.
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from boggle.janitor import Janitor, expired_lobbies, stuck_games, idle_tournaments
from boggle.models import Game, Player, Tournament, TournamentPlayer

NOW = datetime(2024, 1, 1, 12, 0, 0)


def ago(seconds):
    return NOW - timedelta(seconds=seconds)


class TestRules:
    """Tests for the pure snapshot rules."""

    def test_expired_lobbies(self):
        rows = [
            SimpleNamespace(id='old', state='lobby', created_at=ago(601)),
            SimpleNamespace(id='fresh', state='lobby', created_at=ago(599)),
            SimpleNamespace(id='edge', state='lobby', created_at=ago(600)),
            SimpleNamespace(id='started', state='playing', created_at=ago(9999)),
        ]
        assert expired_lobbies(rows, NOW, 600, 'lobby') == ['old']

    def test_expired_lobbies_only_in_given_state(self):
        rows = [
            SimpleNamespace(id='waiting', state='lobby', created_at=ago(601)),
            SimpleNamespace(id='running', state='active', created_at=ago(601)),
        ]
        assert expired_lobbies(rows, NOW, 600, 'active') == ['running']
        assert expired_lobbies(rows, NOW, 600, 'lobby') == ['waiting']

    def test_stuck_games(self):
        rows = [
            SimpleNamespace(id='stuck', state='playing', start_time=ago(121), timer_seconds=60),
            SimpleNamespace(id='edge', state='playing', start_time=ago(120), timer_seconds=60),
            SimpleNamespace(id='running', state='playing', start_time=ago(30), timer_seconds=60),
            SimpleNamespace(id='done', state='finished', start_time=ago(9999), timer_seconds=60),
            SimpleNamespace(id='never', state='playing', start_time=None, timer_seconds=60),
        ]
        assert stuck_games(rows, NOW, 2) == ['stuck']

    def test_idle_tournaments(self):
        rows = [
            SimpleNamespace(id='idle', state='active', last_activity_at=ago(3601), created_at=ago(9000)),
            SimpleNamespace(id='busy', state='active', last_activity_at=ago(10), created_at=ago(9000)),
            SimpleNamespace(id='lobby', state='lobby', last_activity_at=ago(9000), created_at=ago(9000)),
            SimpleNamespace(id='no_activity', state='active', last_activity_at=None, created_at=ago(4000)),
        ]
        assert idle_tournaments(rows, NOW, 3600) == ['idle', 'no_activity']

    def test_from_config(self):
        janitor = Janitor.from_config({
            'LOBBY_TTL_SECONDS': 60,
            'PLAYING_GRACE_FACTOR': 3,
            'TOURNAMENT_IDLE_SECONDS': 120,
        })
        assert janitor.lobby_ttl_seconds == 60
        assert janitor.grace_factor == 3
        assert janitor.idle_seconds == 120


class TestSweep:
    """Tests for Janitor.sweep against the database."""

    def test_deletes_abandoned_lobby_games(self, janitor, games, users, clock):
        old = games.create_game(users['alice'], 60).id
        games.join(old, users['bob'])
        clock.advance(300)
        fresh = games.create_game(users['bob'], 60).id

        clock.advance(301)
        report = janitor.sweep()

        assert report['lobby_games_deleted'] == 1
        assert Game.query.filter_by(id=old).first() is None
        assert Player.query.filter_by(game_id=old).count() == 0
        assert Game.query.filter_by(id=fresh).first() is not None

    def test_force_finishes_stuck_games_without_scoring(self, janitor, games, users, clock):
        game_id = games.create_game(users['alice'], 60).id
        games.start(game_id, users['alice'])
        games.submit_word(game_id, users['alice'], 'ABC')

        clock.advance(121)
        report = janitor.sweep()

        assert report['stuck_games_finished'] == 1
        assert Game.query.filter_by(id=game_id).first().state == 'finished'
        # The sweep skips scoring; the word's point never reaches the score
        assert Player.query.filter_by(game_id=game_id).first().score == 0

    def test_leaves_running_games_alone(self, janitor, games, users, clock):
        game_id = games.create_game(users['alice'], 60).id
        games.start(game_id, users['alice'])

        clock.advance(120)
        assert janitor.sweep()['stuck_games_finished'] == 0
        assert Game.query.filter_by(id=game_id).first().state == 'playing'

    def test_deletes_abandoned_lobby_tournaments(self, janitor, tournaments, users, clock):
        tournament_id = tournaments.create_tournament(users['alice'], 10, 30).id
        tournaments.join(tournament_id, users['bob'])

        clock.advance(601)
        report = janitor.sweep()

        assert report['lobby_tournaments_deleted'] == 1
        assert Tournament.query.filter_by(id=tournament_id).first() is None
        assert TournamentPlayer.query.filter_by(tournament_id=tournament_id).count() == 0

    def test_finishes_idle_tournament_with_leader(self, janitor, tournaments, users, clock):
        tournament = tournaments.create_tournament(users['alice'], 100, 30)
        clock.advance(1)
        tournaments.join(tournament.id, users['bob'])
        tournaments.start(tournament.id, users['alice'])

        game_id = tournaments.get_tournament(tournament.id).current_game_id
        tournaments.games.submit_word(game_id, users['bob'], 'ABCDHG')
        clock.advance(30)
        tournaments.poll(tournament.id)

        clock.advance(3601)
        report = janitor.sweep()

        finished = tournaments.get_tournament(tournament.id)
        assert report['idle_tournaments_finished'] == 1
        assert finished.state == 'finished'
        assert finished.winner_id == users['bob']
        assert finished.finished_at == clock.now

    def test_recent_activity_keeps_tournament_alive(self, janitor, tournaments, users, clock):
        tournament = tournaments.create_tournament(users['alice'], 100, 30)
        tournaments.start(tournament.id, users['alice'])

        clock.advance(3000)
        tournaments.set_ready(tournament.id, users['alice'])
        clock.advance(3000)

        assert janitor.sweep()['idle_tournaments_finished'] == 0
        assert tournaments.get_tournament(tournament.id).state == 'active'

    def test_empty_sweep(self, janitor):
        assert janitor.sweep() == {
            'lobby_games_deleted': 0,
            'stuck_games_finished': 0,
            'lobby_tournaments_deleted': 0,
            'idle_tournaments_finished': 0,
        }
