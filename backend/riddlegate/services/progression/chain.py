from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from riddlegate import db
from riddlegate.errors import ConfigurationError
from riddlegate.models import Folder, GameState, Riddle


@dataclass(frozen=True)
class Unstarted:
    pass


@dataclass(frozen=True)
class InProgress:
    riddle_id: int


@dataclass(frozen=True)
class Completed:
    unlocked_at: datetime


FolderProgress = Union[Unstarted, InProgress, Completed]


def folder_progress(game_state: Optional[GameState], folder_id: int) -> FolderProgress:
    """Where a user stands on one folder, read off their game state entry."""
    entry = game_state.entry_for(folder_id) if game_state is not None else None
    if entry is None:
        return Unstarted()
    if entry.current_riddle_attempt_id is None:
        return Completed(unlocked_at=entry.unlocked_at)
    return InProgress(riddle_id=entry.current_riddle_attempt_id)


def entry_riddle(folder: Folder) -> Riddle:
    if folder.riddle is None:
        raise ConfigurationError(
            f"Folder '{folder.name}' is misconfigured (missing riddle). Please contact support."
        )
    return folder.riddle


def resolve_active_riddle(folder: Folder, game_state: Optional[GameState]) -> Optional[Riddle]:
    """Return the riddle the user has to answer next for this folder.

    None means the folder's chain is already solved.
    """
    progress = folder_progress(game_state, folder.id)
    if isinstance(progress, Completed):
        return None
    if isinstance(progress, InProgress):
        riddle = db.session.get(Riddle, progress.riddle_id)
        if riddle is None:
            raise ConfigurationError(
                f"Riddle {progress.riddle_id} referenced by folder '{folder.name}' could not be loaded."
            )
        return riddle
    return entry_riddle(folder)
