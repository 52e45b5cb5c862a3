import json
from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin

db = SQLAlchemy()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=False)
    alias = db.Column(db.String(100), nullable=True)  # Public display name
    created_at = db.Column(db.DateTime, default=utcnow)

    @property
    def display_name(self) -> str:
        return display_name_for(self.alias, self.email)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'alias': self.alias,
            'display_name': self.display_name,
            'created_at': isoformat(self.created_at),
        }


def display_name_for(alias, email) -> str:
    if alias:
        return alias
    if email:
        return email.split('@')[0]
    return 'Unknown'


class Game(db.Model):
    __tablename__ = 'boggle_games'

    id = db.Column(db.String(50), primary_key=True)
    state = db.Column(db.String(20), nullable=False, default='lobby')
    board = db.Column(db.Text, nullable=False)  # JSON list of 16 tokens
    timer_seconds = db.Column(db.Integer, nullable=False)
    start_time = db.Column(db.DateTime, nullable=True)  # Set once, on lobby -> playing
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    created_by = db.Column(db.String(64), nullable=False)

    players = db.relationship('Player', back_populates='game', cascade='all, delete-orphan')
    words = db.relationship('Word', back_populates='game', cascade='all, delete-orphan')

    @property
    def cells(self):
        return json.loads(self.board)

    def to_dict(self):
        return {
            'id': self.id,
            'state': self.state,
            'board': self.cells,
            'timer_seconds': self.timer_seconds,
            'start_time': isoformat(self.start_time),
            'created_by': self.created_by,
            'created_at': isoformat(self.created_at),
        }


class Player(db.Model):
    __tablename__ = 'boggle_players'

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.String(50), db.ForeignKey('boggle_games.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False, default=0)  # Overwritten when the game is scored
    joined_at = db.Column(db.DateTime, default=utcnow)

    game = db.relationship('Game', back_populates='players')

    __table_args__ = (
        db.UniqueConstraint('game_id', 'user_id', name='unique_player_per_game'),
    )

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'score': self.score,
            'joined_at': isoformat(self.joined_at),
        }


class Word(db.Model):
    __tablename__ = 'boggle_words'

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.String(50), db.ForeignKey('boggle_games.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    word = db.Column(db.String(32), nullable=False)
    points = db.Column(db.Integer, nullable=False)
    submitted_at = db.Column(db.DateTime, default=utcnow)

    game = db.relationship('Game', back_populates='words')

    __table_args__ = (
        db.UniqueConstraint('game_id', 'user_id', 'word', name='unique_word_per_player'),
    )

    def to_dict(self):
        return {
            'word': self.word,
            'user_id': self.user_id,
            'points': self.points,
            'submitted_at': isoformat(self.submitted_at),
        }


class DictionaryWord(db.Model):
    __tablename__ = 'boggle_dictionary'

    word = db.Column(db.String(32), primary_key=True)


class Tournament(db.Model):
    __tablename__ = 'boggle_tournaments'

    id = db.Column(db.String(50), primary_key=True)
    state = db.Column(db.String(20), nullable=False, default='lobby')
    target_score = db.Column(db.Integer, nullable=False)
    timer_seconds = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    created_by = db.Column(db.String(64), nullable=False)
    current_game_id = db.Column(db.String(50), nullable=True)
    winner_id = db.Column(db.String(64), nullable=True)
    finished_at = db.Column(db.DateTime, nullable=True)
    last_activity_at = db.Column(db.DateTime, default=utcnow)

    players = db.relationship('TournamentPlayer', back_populates='tournament',
                              cascade='all, delete-orphan')
    games = db.relationship('TournamentGame', back_populates='tournament',
                            cascade='all, delete-orphan',
                            order_by='TournamentGame.game_number')

    def to_dict(self):
        return {
            'id': self.id,
            'state': self.state,
            'target_score': self.target_score,
            'timer_seconds': self.timer_seconds,
            'created_by': self.created_by,
            'created_at': isoformat(self.created_at),
            'current_game_id': self.current_game_id,
            'winner_id': self.winner_id,
            'finished_at': isoformat(self.finished_at),
            'last_activity_at': isoformat(self.last_activity_at),
        }


class TournamentPlayer(db.Model):
    __tablename__ = 'boggle_tournament_players'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.String(50), db.ForeignKey('boggle_tournaments.id'),
                              nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    total_score = db.Column(db.Integer, nullable=False, default=0)  # Accumulates across games
    ready = db.Column(db.Boolean, nullable=False, default=False)
    joined_at = db.Column(db.DateTime, default=utcnow)

    tournament = db.relationship('Tournament', back_populates='players')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'user_id', name='unique_player_per_tournament'),
    )

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'total_score': self.total_score,
            'ready': self.ready,
            'joined_at': isoformat(self.joined_at),
        }


class TournamentGame(db.Model):
    __tablename__ = 'boggle_tournament_games'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.String(50), db.ForeignKey('boggle_tournaments.id'),
                              nullable=False, index=True)
    game_id = db.Column(db.String(50), db.ForeignKey('boggle_games.id'), nullable=False)
    game_number = db.Column(db.Integer, nullable=False)
    # Flipped exactly once, by whoever adds this game's scores to the totals
    scored = db.Column(db.Boolean, nullable=False, default=False)

    tournament = db.relationship('Tournament', back_populates='games')
    game = db.relationship('Game')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'game_number', name='unique_game_number'),
    )

    def to_dict(self):
        return {
            'game_id': self.game_id,
            'game_number': self.game_number,
            'game_state': self.game.state if self.game else None,
            'created_at': isoformat(self.game.created_at) if self.game else None,
        }
