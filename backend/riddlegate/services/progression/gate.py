from typing import Optional

from riddlegate.errors import LockedError
from riddlegate.models import Folder, GameState


def is_accessible(folder: Folder, game_state: Optional[GameState]) -> bool:
    """A folder opens once every prerequisite folder is fully solved.

    Started-but-unfinished prerequisites do not count.
    """
    required = folder.dependency_ids
    if not required:
        return True
    if game_state is None:
        return False
    return required <= game_state.completed_folder_ids()


def ensure_accessible(folder: Folder, game_state: Optional[GameState]) -> None:
    if not is_accessible(folder, game_state):
        raise LockedError('This folder is locked! Unlock its prerequisites first.')
