"""Answer evaluation and per-folder state transitions.

A correct answer either advances the folder to the next riddle in its chain
or, on the last riddle, completes the folder. Each transition is committed as
one write to the user's game state row; a concurrent writer on the same row is
detected through the row version and the submission is re-evaluated against
fresh state.
"""
import enum
from dataclasses import dataclass
from typing import Callable, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from riddlegate import db
from riddlegate.errors import ConfigurationError, GameError, NotFoundError, ValidationError
from riddlegate.models import Folder, GameState, Riddle, UnlockedFolder, User, utcnow
from riddlegate.socketio_events import publish_leaderboard_update
from .chain import Completed, InProgress, entry_riddle, folder_progress, resolve_active_riddle
from .gate import ensure_accessible


class SubmissionStatus(str, enum.Enum):
    INCORRECT = 'incorrect'
    ADVANCED = 'advanced'
    UNLOCKED = 'unlocked'
    ALREADY_UNLOCKED = 'already_unlocked'


@dataclass
class SubmissionResult:
    status: SubmissionStatus
    next_riddle: Optional[Riddle] = None
    unlocked_count: Optional[int] = None


@dataclass
class FolderDetails:
    folder: Folder
    riddle: Optional[Riddle]
    is_unlocked: bool
    in_progress: bool

    def to_dict(self):
        return {
            'folder': self.folder.to_dict(),
            'riddle': self.riddle.to_public_dict() if self.riddle else None,
            'isUnlocked': self.is_unlocked,
            'inProgress': self.in_progress,
        }


def answer_matches(riddle: Riddle, submitted: str) -> bool:
    expected = riddle.answer.strip()
    given = submitted.strip()
    if riddle.answer_case_sensitive:
        return given == expected
    return given.lower() == expected.lower()


def _load_folder(folder_id) -> Folder:
    folder = db.session.get(Folder, folder_id)
    if folder is None:
        raise NotFoundError('Folder not found.')
    entry_riddle(folder)
    return folder


def _load_game_state(user_id, for_update: bool = False) -> GameState:
    query = GameState.query.filter_by(user_id=user_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    state = query.first()
    if state is None:
        raise NotFoundError('Game state not found for user. Please try logging out and in again.')
    return state


def get_folder_details(user_id, folder_id) -> FolderDetails:
    folder = _load_folder(folder_id)
    state = _load_game_state(user_id)
    ensure_accessible(folder, state)
    progress = folder_progress(state, folder.id)
    return FolderDetails(
        folder=folder,
        riddle=resolve_active_riddle(folder, state),
        is_unlocked=isinstance(progress, Completed),
        in_progress=isinstance(progress, InProgress),
    )


def _evaluate(user_id, folder_id, submitted: str) -> SubmissionResult:
    folder = _load_folder(folder_id)
    state = _load_game_state(user_id, for_update=True)
    ensure_accessible(folder, state)

    if isinstance(folder_progress(state, folder.id), Completed):
        count = state.unlocked_count
        db.session.rollback()
        return SubmissionResult(SubmissionStatus.ALREADY_UNLOCKED, unlocked_count=count)

    riddle = resolve_active_riddle(folder, state)
    if not answer_matches(riddle, submitted):
        db.session.rollback()
        return SubmissionResult(SubmissionStatus.INCORRECT)

    now = utcnow()
    entry = state.entry_for(folder.id)

    if riddle.next_riddle_id is not None:
        next_riddle = db.session.get(Riddle, riddle.next_riddle_id)
        if next_riddle is None:
            raise ConfigurationError(
                f"Next riddle {riddle.next_riddle_id} after riddle {riddle.id} could not be loaded."
            )
        if entry is None:
            state.unlocked_folders.append(UnlockedFolder(
                folder_id=folder.id,
                unlocked_at=now,
                current_riddle_attempt_id=next_riddle.id,
            ))
        else:
            entry.current_riddle_attempt_id = next_riddle.id
        state.updated_at = now
        db.session.commit()
        current_app.logger.info(f"[advance] user={user_id} folder={folder.id} riddle {riddle.id} -> {next_riddle.id}")
        return SubmissionResult(SubmissionStatus.ADVANCED, next_riddle=next_riddle)

    if entry is None:
        state.unlocked_folders.append(UnlockedFolder(
            folder_id=folder.id,
            unlocked_at=now,
            current_riddle_attempt_id=None,
        ))
    else:
        entry.current_riddle_attempt_id = None
        entry.unlocked_at = now
    state.last_folder_unlocked_at = now
    state.updated_at = now
    db.session.commit()
    count = state.unlocked_count
    current_app.logger.info(f"[unlock] user={user_id} folder={folder.id} unlocked_count={count}")
    return SubmissionResult(SubmissionStatus.UNLOCKED, unlocked_count=count)


def record_activity(user_id) -> None:
    """Stamp the user's last activity. Failure here never fails the caller."""
    try:
        user = db.session.get(User, user_id)
        if user is not None:
            user.last_activity = utcnow()
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(f"[activity] could not record activity for user={user_id}: {exc}")


def _notify_unlock(notify: Callable[[int, int], None], user_id, count: int) -> None:
    try:
        notify(user_id, count)
    except Exception as exc:
        current_app.logger.warning(f"[unlock] leaderboard notification failed for user={user_id}: {exc}")


def submit_answer(user_id, folder_id, submitted, notify: Optional[Callable[[int, int], None]] = None) -> SubmissionResult:
    """Evaluate an answer for the folder's active riddle and apply the transition.

    Wrong answers and repeats on an already solved folder leave the game state
    untouched. The leaderboard is notified once per folder completion.
    """
    if not isinstance(submitted, str) or not submitted.strip():
        raise ValidationError('An answer is required.')

    max_retries = int(current_app.config.get('PROGRESSION_MAX_RETRIES', 3))
    retries = 0
    while True:
        try:
            result = _evaluate(user_id, folder_id, submitted)
            break
        except (IntegrityError, StaleDataError) as exc:
            db.session.rollback()
            retries += 1
            if retries > max_retries:
                current_app.logger.error(f"[answer] giving up after {max_retries} retries user={user_id} folder={folder_id}: {exc}")
                raise
            current_app.logger.warning(f"[answer] concurrent update user={user_id} folder={folder_id}, retry {retries}/{max_retries}")
        except (GameError, SQLAlchemyError):
            db.session.rollback()
            raise

    record_activity(user_id)
    if result.status == SubmissionStatus.UNLOCKED:
        _notify_unlock(notify or publish_leaderboard_update, user_id, result.unlocked_count)
    return result
