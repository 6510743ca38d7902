from riddlegate import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp; SQLite drops tzinfo so everything is stored naive."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    roll_number = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    last_activity = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    game_state = db.relationship('GameState', back_populates='user', uselist=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'rollNumber': self.roll_number,
            'isAdmin': self.is_admin,
            'isVerified': self.is_verified,
            'lastActivity': _iso(self.last_activity),
        }


class Riddle(db.Model):
    __tablename__ = 'riddle'
    id = db.Column(db.Integer, primary_key=True)
    question = db.Column(db.Text, nullable=False)
    image = db.Column(db.String(512), nullable=True)  # URL
    answer = db.Column(db.String(256), nullable=False)
    answer_case_sensitive = db.Column(db.Boolean, default=False, nullable=False)
    # Chains are authored acyclic; nothing here checks for cycles
    next_riddle_id = db.Column(db.Integer, db.ForeignKey('riddle.id'), nullable=True)

    def to_public_dict(self):
        return {
            'id': self.id,
            'question': self.question,
            'image': self.image,
            'nextRiddle': self.next_riddle_id,
        }

    def to_dict(self):
        data = self.to_public_dict()
        data['answer'] = self.answer
        data['answerCaseSensitive'] = self.answer_case_sensitive
        return data


folder_dependency = db.Table(
    'folder_dependency',
    db.Column('folder_id', db.Integer, db.ForeignKey('folder.id'), primary_key=True),
    db.Column('depends_on_id', db.Integer, db.ForeignKey('folder.id'), primary_key=True),
)


class Folder(db.Model):
    __tablename__ = 'folder'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    order = db.Column(db.Integer, unique=True, nullable=False)
    riddle_id = db.Column(db.Integer, db.ForeignKey('riddle.id'), nullable=False)
    riddle = db.relationship('Riddle', foreign_keys=[riddle_id])
    dependencies = db.relationship(
        'Folder',
        secondary=folder_dependency,
        primaryjoin=id == folder_dependency.c.folder_id,
        secondaryjoin=id == folder_dependency.c.depends_on_id,
        lazy='selectin',
    )

    @property
    def dependency_ids(self):
        return {dep.id for dep in self.dependencies}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'order': self.order,
            'riddle': self.riddle_id,
            'dependencies': sorted(self.dependency_ids),
        }


class GameState(db.Model):
    __tablename__ = 'game_state'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    game_start_time = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_folder_unlocked_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    # Bumped by SQLAlchemy on every flush of this row; a concurrent writer
    # holding an older version gets StaleDataError
    version = db.Column(db.Integer, nullable=False)
    user = db.relationship('User', back_populates='game_state')
    unlocked_folders = db.relationship(
        'UnlockedFolder',
        back_populates='game_state',
        order_by='UnlockedFolder.id',
        lazy='selectin',
    )

    __mapper_args__ = {'version_id_col': version}

    def entry_for(self, folder_id):
        for entry in self.unlocked_folders:
            if entry.folder_id == folder_id:
                return entry
        return None

    def completed_folder_ids(self):
        return {e.folder_id for e in self.unlocked_folders if e.is_completed}

    @property
    def unlocked_count(self):
        return len(self.completed_folder_ids())

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'unlockedFolders': [e.to_dict() for e in self.unlocked_folders],
            'unlockedCount': self.unlocked_count,
            'gameStartTime': _iso(self.game_start_time),
            'lastFolderUnlockedAt': _iso(self.last_folder_unlocked_at),
        }


class UnlockedFolder(db.Model):
    __tablename__ = 'unlocked_folder'
    __table_args__ = (
        db.UniqueConstraint('game_state_id', 'folder_id', name='uq_unlocked_folder_state_folder'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_state_id = db.Column(db.Integer, db.ForeignKey('game_state.id'), nullable=False)
    folder_id = db.Column(db.Integer, db.ForeignKey('folder.id'), nullable=False)
    unlocked_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    # Null once the whole chain is solved
    current_riddle_attempt_id = db.Column(db.Integer, db.ForeignKey('riddle.id'), nullable=True)
    game_state = db.relationship('GameState', back_populates='unlocked_folders')
    folder = db.relationship('Folder')
    current_riddle_attempt = db.relationship('Riddle', foreign_keys=[current_riddle_attempt_id])

    @property
    def is_completed(self):
        return self.current_riddle_attempt_id is None

    def to_dict(self):
        attempt = self.current_riddle_attempt
        return {
            'folderId': self.folder_id,
            'folderName': self.folder.name if self.folder else None,
            'folderOrder': self.folder.order if self.folder else None,
            'unlockedAt': _iso(self.unlocked_at),
            'currentRiddleAttempt': attempt.to_public_dict() if attempt else None,
            'status': 'completed' if self.is_completed else 'in_progress',
        }
