import logging
from datetime import datetime, timedelta
from types import SimpleNamespace

from riddlegate.services.progression.leaderboard import project

T0 = datetime(2026, 1, 1, 12, 0, 0)


def _state(state_id, user, completed=0, in_progress=0, last_unlock=None):
    entries = [SimpleNamespace(current_riddle_attempt_id=None) for _ in range(completed)]
    entries += [SimpleNamespace(current_riddle_attempt_id=100 + i) for i in range(in_progress)]
    return SimpleNamespace(id=state_id, user=user, unlocked_folders=entries, last_folder_unlocked_at=last_unlock)


def _user(user_id, name, last_activity=None):
    return SimpleNamespace(id=user_id, username=name, roll_number=f'R{user_id}', last_activity=last_activity)


def test_more_folders_ranks_higher_regardless_of_time():
    a = _state(1, _user(1, 'alice'), completed=2, last_unlock=T0)
    b = _state(2, _user(2, 'bob'), completed=3, last_unlock=T0 + timedelta(hours=5))
    ranked = project([a, b])
    assert [e.username for e in ranked] == ['bob', 'alice']
    assert ranked[0].score == ranked[0].unlocked_count == 3


def test_equal_scores_break_on_earlier_completion():
    a = _state(1, _user(1, 'alice'), completed=3, last_unlock=T0)
    b = _state(2, _user(2, 'bob'), completed=3, last_unlock=T0 + timedelta(minutes=1))
    assert [e.username for e in project([b, a])] == ['alice', 'bob']


def test_only_completed_folders_are_counted():
    a = _state(1, _user(1, 'alice'), completed=1, in_progress=3, last_unlock=T0)
    b = _state(2, _user(2, 'bob'), completed=2, last_unlock=T0 + timedelta(days=1))
    ranked = project([a, b])
    assert [(e.username, e.unlocked_count) for e in ranked] == [('bob', 2), ('alice', 1)]


def test_missing_timestamps_sort_last_then_last_activity():
    no_time_late = _state(1, _user(1, 'late', last_activity=T0 + timedelta(hours=2)), completed=1)
    no_time_early = _state(2, _user(2, 'early', last_activity=T0), completed=1)
    no_time_idle = _state(3, _user(3, 'idle'), completed=1)
    timed = _state(4, _user(4, 'timed'), completed=1, last_unlock=T0 + timedelta(days=3))
    ranked = project([no_time_idle, no_time_late, timed, no_time_early])
    assert [e.username for e in ranked] == ['timed', 'early', 'late', 'idle']


def test_states_without_user_are_skipped_and_logged(caplog):
    orphan = _state(7, None, completed=5, last_unlock=T0)
    kept = _state(8, _user(8, 'kept'), completed=0)
    with caplog.at_level(logging.WARNING):
        ranked = project([orphan, kept])
    assert [e.username for e in ranked] == ['kept']
    assert 'game state 7' in caplog.text


def test_entry_serialization():
    entry = project([_state(1, _user(1, 'alice', last_activity=T0), completed=2, last_unlock=T0)])[0]
    assert entry.to_dict() == {
        'userId': 1,
        'username': 'alice',
        'rollNumber': 'R1',
        'unlockedCount': 2,
        'score': 2,
        'tieBreakTime': T0.isoformat(),
        'lastActivity': T0.isoformat(),
    }


def test_empty_input():
    assert project([]) == []
