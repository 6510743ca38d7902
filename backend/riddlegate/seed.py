from riddlegate import db
from riddlegate.models import User, Riddle, Folder, GameState


def seed_sample_game(admin_email: str, admin_password: str) -> None:
    """Create an admin account and a three folder sample game.

    Attic is open from the start, Cellar is a two riddle chain behind Attic,
    and Vault needs both.
    """
    admin = User(username='admin', email=admin_email, roll_number='ADMIN-0', is_admin=True, is_verified=True)
    admin.set_password(admin_password)
    db.session.add(admin)
    db.session.flush()
    db.session.add(GameState(user_id=admin.id))

    attic_riddle = Riddle(question='What opens a lock but is not a door?', answer='Key')
    cellar_second = Riddle(question='The more you take, the more you leave behind. What am I?', answer='Footsteps')
    db.session.add_all([attic_riddle, cellar_second])
    db.session.flush()
    cellar_first = Riddle(
        question='I have cities but no houses. What am I?',
        answer='Map',
        next_riddle_id=cellar_second.id,
    )
    vault_riddle = Riddle(question='Type the word exactly: Open Sesame', answer='Open Sesame', answer_case_sensitive=True)
    db.session.add_all([cellar_first, vault_riddle])
    db.session.flush()

    attic = Folder(name='Attic', order=1, riddle_id=attic_riddle.id)
    cellar = Folder(name='Cellar', order=2, riddle_id=cellar_first.id, dependencies=[attic])
    vault = Folder(name='Vault', order=3, riddle_id=vault_riddle.id, dependencies=[attic, cellar])
    db.session.add_all([attic, cellar, vault])
    db.session.commit()
