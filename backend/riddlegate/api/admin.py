import functools

from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
from riddlegate import db
from riddlegate.models import Folder, Riddle, User
from riddlegate.errors import NotFoundError, ValidationError
from riddlegate.services.progression.leaderboard import load_leaderboard

admin = Blueprint('admin', __name__)


def admin_required(f):
    """Require a logged-in admin: 401 without a session, 403 for regular users."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if not current_user.is_admin:
            return jsonify({'error': 'Not authorized as an admin', 'code': 'FORBIDDEN'}), 403
        return f(*args, **kwargs)
    return decorated


def _parse_id(value, field):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an id')


@admin.route('/riddles', methods=['POST'])
@admin_required
def add_riddle():
    data = request.get_json(silent=True) or {}
    question = (data.get('question') or '').strip()
    answer = (data.get('answer') or '').strip()
    if not question or not answer:
        raise ValidationError('Question and answer are required.')

    next_riddle_id = _parse_id(data.get('nextRiddle'), 'nextRiddle')
    if next_riddle_id is not None and db.session.get(Riddle, next_riddle_id) is None:
        raise ValidationError('Next riddle not found.')

    riddle = Riddle(
        question=question,
        image=data.get('image') or None,
        answer=answer,
        answer_case_sensitive=bool(data.get('answerCaseSensitive', False)),
        next_riddle_id=next_riddle_id,
    )
    db.session.add(riddle)
    db.session.commit()
    current_app.logger.info(f"[admin] riddle {riddle.id} added by user={current_user.id}")
    return jsonify({'message': 'Riddle added successfully', 'riddle': riddle.to_dict()}), 201


@admin.route('/riddles', methods=['GET'])
@admin_required
def get_all_riddles():
    riddles = Riddle.query.order_by(Riddle.id.asc()).all()
    return jsonify([r.to_dict() for r in riddles])


@admin.route('/folders', methods=['POST'])
@admin_required
def add_folder():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    order = data.get('order')
    if not name or order is None:
        raise ValidationError('Folder name and order are required.')
    try:
        order = int(order)
    except (TypeError, ValueError):
        raise ValidationError('Folder order must be a number.')

    riddle_id = _parse_id(data.get('riddleId'), 'riddleId')
    if riddle_id is None or db.session.get(Riddle, riddle_id) is None:
        raise ValidationError('Riddle not found for this folder.')

    dependency_ids = [_parse_id(d, 'dependencies') for d in (data.get('dependencies') or [])]
    dependencies = Folder.query.filter(Folder.id.in_(dependency_ids)).all() if dependency_ids else []
    if len(dependencies) != len(set(dependency_ids)):
        raise ValidationError('One or more dependency folders not found.')

    if Folder.query.filter_by(name=name).first():
        raise ValidationError('A folder with this name already exists.')
    if Folder.query.filter_by(order=order).first():
        raise ValidationError('A folder with this order already exists.')

    folder = Folder(name=name, order=order, riddle_id=riddle_id, dependencies=dependencies)
    db.session.add(folder)
    db.session.commit()
    current_app.logger.info(f"[admin] folder {folder.id} '{folder.name}' added by user={current_user.id}")
    return jsonify({'message': 'Folder added successfully', 'folder': folder.to_dict()}), 201


@admin.route('/folders', methods=['GET'])
@admin_required
def get_all_folders():
    folders = Folder.query.order_by(Folder.order.asc()).all()
    payload = []
    for f in folders:
        fd = f.to_dict()
        fd['riddleQuestion'] = f.riddle.question if f.riddle else None
        fd['dependencyNames'] = [d.name for d in f.dependencies]
        payload.append(fd)
    return jsonify(payload)


@admin.route('/users', methods=['GET'])
@admin_required
def get_all_users():
    users = User.query.filter_by(is_admin=False).order_by(User.id.asc()).all()
    return jsonify([u.to_dict() for u in users])


@admin.route('/users/<int:user_id>/toggle-admin', methods=['PUT'])
@admin_required
def toggle_admin_status(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found.')
    user.is_admin = not user.is_admin
    db.session.commit()
    return jsonify({
        'message': f'User {user.username} admin status toggled to {user.is_admin}',
        'isAdmin': user.is_admin,
    })


@admin.route('/leaderboard', methods=['GET'])
@admin_required
def get_leaderboard():
    return jsonify([e.to_dict() for e in load_leaderboard()])
