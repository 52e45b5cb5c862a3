"""
Best-effort announcements through an ntfy server.

Nothing here raises: a missing topic is logged and skipped, and any delivery
failure is logged and dropped so game flow never depends on the notifier.
"""
import logging
from threading import Thread
from typing import List, Optional, Sequence, Tuple

import requests

logger = logging.getLogger(__name__)

PRIORITIES = {'min': 1, 'low': 2, 'default': 3, 'high': 4, 'max': 5}
MEDALS = ['🥇', '🥈', '🥉']


def format_standings(standings: Sequence[Tuple[str, int]]) -> str:
    """One line per player, medals for the top three."""
    lines = []
    for index, (name, score) in enumerate(standings):
        medal = MEDALS[index] if index < len(MEDALS) else '  '
        lines.append(f"{medal} {name}: {score} pts")
    return '\n'.join(lines)


def game_finished_message(standings: Sequence[Tuple[str, int]]) -> str:
    winner_name, winner_score = standings[0]
    count = len(standings)
    total = sum(score for _, score in standings)
    return (
        f"🏆 {winner_name} wins with {winner_score} points!\n\n"
        f"📊 Final Scores ({count} player{'s' if count != 1 else ''}):\n"
        f"{format_standings(standings)}\n\n"
        f"🎯 Total points scored: {total}"
    )


def tournament_completed_message(
    standings: Sequence[Tuple[str, int]],
    winner: Tuple[str, int],
    games_played: int,
    target_score: int
) -> str:
    winner_name, winner_score = winner
    return (
        f"🏆 {winner_name} wins the tournament with {winner_score} points!\n\n"
        f"🎮 Games played: {games_played}\n"
        f"🎯 Target score: {target_score}\n\n"
        f"📊 Final Standings:\n{format_standings(standings)}"
    )


class Notifier:
    def __init__(
        self,
        server: str = 'https://ntfy.sh',
        topic: str = '',
        timeout: int = 5,
        async_send: bool = True,
        app_url: str = ''
    ):
        self.server = server.rstrip('/')
        self.topic = topic
        self.timeout = timeout
        self.async_send = async_send
        self.app_url = app_url.rstrip('/')

    @classmethod
    def from_config(cls, cfg) -> "Notifier":
        return cls(
            server=cfg.get('NTFY_SERVER', 'https://ntfy.sh'),
            topic=cfg.get('NTFY_TOPIC', ''),
            timeout=cfg.get('NTFY_TIMEOUT', 5),
            async_send=cfg.get('NTFY_ASYNC', True),
            app_url=cfg.get('APP_URL', ''),
        )

    def send(
        self,
        title: str,
        message: str,
        priority: str = 'default',
        tags: Optional[List[str]] = None,
        click: Optional[str] = None
    ) -> None:
        if not self.topic:
            logger.warning(f"NTFY_TOPIC not configured, skipping notification: {title}")
            return

        payload = {
            'topic': self.topic,
            'title': title,
            'message': message,
            'priority': PRIORITIES.get(priority, PRIORITIES['default']),
        }
        if tags:
            payload['tags'] = list(tags)
        if click:
            payload['click'] = click

        if self.async_send:
            Thread(target=self._post, args=(payload,), daemon=True).start()
        else:
            self._post(payload)

    def _post(self, payload: dict) -> None:
        try:
            resp = requests.post(self.server, json=payload, timeout=self.timeout)
            if resp.ok:
                logger.info(f"Sent notification: {payload['title']}")
            else:
                logger.error(f"Notification rejected ({resp.status_code}): {resp.text[:200]}")
        except Exception as e:
            logger.error(f"Failed to send notification '{payload['title']}': {e}")

    def game_finished(self, game_id: str, standings: Sequence[Tuple[str, int]]) -> None:
        if not standings:
            return
        self.send(
            title='🎲 Boggle Game Finished!',
            message=game_finished_message(standings),
            tags=['game', 'boggle'],
            click=f"{self.app_url}/boggle/?game={game_id}",
        )

    def tournament_completed(
        self,
        tournament_id: str,
        standings: Sequence[Tuple[str, int]],
        winner: Tuple[str, int],
        games_played: int,
        target_score: int
    ) -> None:
        self.send(
            title='🏆 Boggle Tournament Complete!',
            message=tournament_completed_message(standings, winner, games_played, target_score),
            priority='high',
            tags=['tournament', 'boggle', 'winner'],
            click=f"{self.app_url}/boggle/?tournament={tournament_id}",
        )
