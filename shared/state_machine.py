from enum import Enum
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass


class GameState(str, Enum):
    LOBBY = "lobby"
    PLAYING = "playing"
    FINISHED = "finished"


class TournamentState(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"
    FINISHED = "finished"


class TransitionError(Exception):
    def __init__(self, from_state: str, to_state: str, reason: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from {from_state} to {to_state}"
        super().__init__(self.reason)


@dataclass
class Transition:
    from_state: Enum
    to_state: Enum
    action: str
    guard: Optional[Callable] = None


def all_players_ready_guard(context: dict) -> bool:
    """Every player has readied up, and there is at least one player."""
    players = context.get("players", [])
    return len(players) > 0 and all(bool(p.get("ready")) for p in players)


class StateMachine:
    """
    Table-driven state machine. Subclasses declare STATES, INITIAL_STATE,
    TRANSITIONS and ALLOWED_ACTIONS; instances only track the current state.

    The machine validates moves in memory. Persisting the new state (and
    making that write conditional on the old one) is the caller's job.
    """
    STATES = None
    INITIAL_STATE = None
    TRANSITIONS: List[Transition] = []
    ALLOWED_ACTIONS: Dict[Enum, List[str]] = {}

    def __init__(self, initial_state: Enum = None):
        self._state = initial_state if initial_state is not None else self.INITIAL_STATE

    @property
    def state(self):
        return self._state

    @property
    def allowed_actions(self) -> List[str]:
        return self.ALLOWED_ACTIONS.get(self._state, [])

    def can_perform(self, action: str) -> bool:
        return action in self.allowed_actions

    def transition(self, action: str, guard_context: dict = None):
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                if t.guard and guard_context is not None:
                    if not t.guard(guard_context):
                        raise TransitionError(
                            self._state.value,
                            t.to_state.value,
                            f"Guard condition failed for action '{action}'"
                        )

                self._state = t.to_state
                return self._state

        raise TransitionError(
            self._state.value,
            "unknown",
            f"No valid transition for action '{action}' from state '{self._state.value}'"
        )

    @classmethod
    def from_state_string(cls, state_str: str) -> "StateMachine":
        try:
            state = cls.STATES(state_str)
        except ValueError:
            state = cls.INITIAL_STATE
        return cls(initial_state=state)


class GameStateMachine(StateMachine):
    STATES = GameState
    INITIAL_STATE = GameState.LOBBY

    TRANSITIONS = [
        Transition(GameState.LOBBY, GameState.PLAYING, "start"),
        Transition(GameState.PLAYING, GameState.FINISHED, "finish"),
    ]

    ALLOWED_ACTIONS = {
        GameState.LOBBY: ["join", "leave", "start"],
        GameState.PLAYING: ["submit", "finish"],
        GameState.FINISHED: ["view"],
    }


class TournamentStateMachine(StateMachine):
    STATES = TournamentState
    INITIAL_STATE = TournamentState.LOBBY

    TRANSITIONS = [
        Transition(TournamentState.LOBBY, TournamentState.ACTIVE, "start"),
        Transition(TournamentState.ACTIVE, TournamentState.ACTIVE, "advance", all_players_ready_guard),
        Transition(TournamentState.ACTIVE, TournamentState.FINISHED, "complete"),
    ]

    ALLOWED_ACTIONS = {
        TournamentState.LOBBY: ["join", "leave", "start"],
        TournamentState.ACTIVE: ["ready", "advance", "complete"],
        TournamentState.FINISHED: ["view"],
    }
