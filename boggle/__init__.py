"""
Boggle Service - timed multiplayer word games and tournaments

Responsibilities:
- Board generation and word validation
- Game lifecycle (lobby, play, scoring) driven by client polling
- Tournaments accumulating scores across games
- Janitor sweep for abandoned lobbies, stuck games and idle tournaments
- Result announcements through ntfy
"""
