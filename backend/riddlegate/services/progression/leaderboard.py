import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import selectinload

from riddlegate.models import GameState

logger = logging.getLogger(__name__)


@dataclass
class LeaderboardEntry:
    user_id: int
    username: str
    roll_number: Optional[str]
    unlocked_count: int
    score: int
    tie_break_time: Optional[datetime]
    last_activity: Optional[datetime]

    def to_dict(self):
        return {
            'userId': self.user_id,
            'username': self.username,
            'rollNumber': self.roll_number,
            'unlockedCount': self.unlocked_count,
            'score': self.score,
            'tieBreakTime': self.tie_break_time.isoformat() if self.tie_break_time else None,
            'lastActivity': self.last_activity.isoformat() if self.last_activity else None,
        }


def _nulls_last(value: Optional[datetime]):
    return (value is None, value or datetime.min)


def _rank_key(entry: LeaderboardEntry):
    return (-entry.score, _nulls_last(entry.tie_break_time), _nulls_last(entry.last_activity))


def project(game_states: Iterable) -> List[LeaderboardEntry]:
    """Rank players from their game states alone.

    Score is the number of fully solved folders. Ties go to whoever finished
    their latest folder first, then to the earlier last activity; missing
    timestamps rank after present ones.
    """
    entries = []
    for state in game_states:
        user = state.user
        if user is None:
            logger.warning(f"[leaderboard] game state {state.id} has no associated user; skipping")
            continue
        completed = sum(1 for e in state.unlocked_folders if e.current_riddle_attempt_id is None)
        entries.append(LeaderboardEntry(
            user_id=user.id,
            username=user.username,
            roll_number=user.roll_number,
            unlocked_count=completed,
            score=completed,
            tie_break_time=state.last_folder_unlocked_at,
            last_activity=user.last_activity,
        ))
    entries.sort(key=_rank_key)
    return entries


def load_leaderboard() -> List[LeaderboardEntry]:
    states = GameState.query.options(selectinload(GameState.user)).all()
    return project(states)
