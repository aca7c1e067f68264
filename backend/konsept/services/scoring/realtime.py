"""Keeps an open game view in step with the store.

A ``GameSynchronizer`` belongs to one open view of one game. It listens on
the change feed for participant and round changes of that game and for
score changes anywhere, and answers every event with a full re-fetch and
``combine``; event payloads are never applied incrementally.
"""

import threading
from typing import Callable, Optional

from flask import current_app

from konsept.models import Participant, Round, Score
from .aggregator import combine
from .leaderboard import marker_for


def load_game_rows(game_id: int):
    """Fetch (participants, rounds, scores) for one game."""
    participants = Participant.query.filter_by(game_id=game_id).order_by(Participant.id).all()
    rounds = Round.query.filter_by(game_id=game_id).order_by(Round.round_number).all()
    scores = Score.query.join(Round, Round.id == Score.round_id).filter(Round.game_id == game_id).all()
    return participants, rounds, scores


def serialize_board(game_id: int, rounds, rows) -> dict:
    board = []
    for idx, row in enumerate(rows, start=1):
        entry = row.to_dict()
        entry['rank'] = idx
        entry['marker'] = marker_for(idx)
        board.append(entry)
    return {
        'game_id': game_id,
        'rounds': [r.to_dict() for r in rounds],
        'participants': board,
    }


def game_board(game_id: int) -> dict:
    participants, rounds, scores = load_game_rows(game_id)
    return serialize_board(game_id, rounds, combine(participants, rounds, scores))


class GameSynchronizer:
    def __init__(self, game_id: int, on_refresh: Callable[[dict], None], feed=None, loader=None):
        self.game_id = game_id
        self._on_refresh = on_refresh
        self._feed = feed
        self._loader = loader or load_game_rows
        self._lock = threading.Lock()
        self._generation = 0
        self._subscriptions = []
        self.closed = False
        self.rounds = []
        self.rows = []

    @property
    def is_open(self) -> bool:
        return bool(self._subscriptions) and not self.closed

    def open(self) -> Optional[dict]:
        feed = self._feed or current_app.extensions['konsept_changes']
        self._subscriptions = [
            feed.subscribe('participants', self.handle, game_id=self.game_id),
            # Score rows carry no game id in the hosted schema, so any score change refreshes
            feed.subscribe('scores', self.handle),
            feed.subscribe('rounds', self.handle, game_id=self.game_id),
        ]
        current_app.logger.info(f"[sync-open] game={self.game_id}")
        return self.refresh()

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self.closed = True
            self._generation += 1
        for sub in self._subscriptions:
            sub.close()
        self._subscriptions = []
        current_app.logger.info(f"[sync-close] game={self.game_id}")

    def handle(self, event) -> None:
        current_app.logger.debug(f"[sync-event] game={self.game_id} table={event.table} op={event.op}")
        self.refresh()

    def refresh(self) -> Optional[dict]:
        """Re-fetch and recompute; returns the new state, or None when discarded."""
        with self._lock:
            if self.closed:
                return None
            self._generation += 1
            generation = self._generation

        participants, rounds, scores = self._loader(self.game_id)
        rows = combine(participants, rounds, scores)
        state = serialize_board(self.game_id, rounds, rows)

        with self._lock:
            if self.closed or generation != self._generation:
                current_app.logger.info(f"[sync-stale] game={self.game_id} generation={generation}")
                return None
            self.rounds = rounds
            self.rows = rows
        self._on_refresh(state)
        return state
