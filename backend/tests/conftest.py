import os
import sys
from types import SimpleNamespace

import pytest

# Ensure the backend root (containing the `riddlegate` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from riddlegate import create_app, db, socketio
from riddlegate.config import Config


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    MAIL_SUPPRESS_SEND = True
    OTP_TTL_SEC = 300
    PROGRESSION_MAX_RETRIES = 3


@pytest.fixture()
def flask_app():
    # Requests must not run inside a long-lived app context, otherwise
    # flask.g (and the logged in user cached on it) leaks between requests.
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import riddlegate.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, client):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=client,
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def make_user(flask_app):
    """Create a verified user with a game state; returns the user id."""
    from riddlegate.models import User, GameState

    counter = {'n': 0}

    def _make(username=None, email=None, password='secret', is_admin=False, verified=True, with_state=True, last_activity=None):
        counter['n'] += 1
        n = counter['n']
        with flask_app.app_context():
            user = User(
                username=username or f'user{n}',
                email=email or f'user{n}@example.com',
                roll_number=f'R{n:03d}',
                is_admin=is_admin,
                is_verified=verified,
                last_activity=last_activity,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.flush()
            if with_state:
                db.session.add(GameState(user_id=user.id))
            db.session.commit()
            return user.id

    return _make


@pytest.fixture()
def login(client):
    def _login(user_id, password='secret', http_client=None):
        from riddlegate.models import User
        c = http_client or client
        with c.application.app_context():
            email = db.session.get(User, user_id).email
        res = c.post('/api/auth/login', json={'email': email, 'password': password})
        assert res.status_code == 200, res.get_json()
        return res.get_json()['user']

    return _login


@pytest.fixture()
def game_content(flask_app):
    """Attic (open, one riddle), Cellar (two riddle chain, needs Attic), Vault (needs both)."""
    from riddlegate.models import Riddle, Folder

    with flask_app.app_context():
        attic_riddle = Riddle(question='What opens a lock?', answer='Key', answer_case_sensitive=False)
        cellar_second = Riddle(question='The more you take, the more you leave behind.', answer='Footsteps')
        db.session.add_all([attic_riddle, cellar_second])
        db.session.flush()
        cellar_first = Riddle(question='Cities but no houses?', answer='Map', next_riddle_id=cellar_second.id)
        vault_riddle = Riddle(question='Say it exactly', answer='Open Sesame', answer_case_sensitive=True)
        db.session.add_all([cellar_first, vault_riddle])
        db.session.flush()

        attic = Folder(name='Attic', order=1, riddle_id=attic_riddle.id)
        cellar = Folder(name='Cellar', order=2, riddle_id=cellar_first.id, dependencies=[attic])
        vault = Folder(name='Vault', order=3, riddle_id=vault_riddle.id, dependencies=[attic, cellar])
        db.session.add_all([attic, cellar, vault])
        db.session.commit()

        return SimpleNamespace(
            attic=attic.id,
            cellar=cellar.id,
            vault=vault.id,
            attic_riddle=attic_riddle.id,
            cellar_first=cellar_first.id,
            cellar_second=cellar_second.id,
            vault_riddle=vault_riddle.id,
        )
