from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from riddlegate.models import Folder, GameState
from riddlegate.errors import NotFoundError
from riddlegate.services.progression.engine import (
    SubmissionStatus,
    get_folder_details,
    submit_answer as svc_submit_answer,
)

game = Blueprint('game', __name__)


@game.route('/state', methods=['GET'])
@login_required
def get_game_state():
    state = GameState.query.filter_by(user_id=current_user.id).first()
    if not state:
        raise NotFoundError('Game state not found for user. Please try logging out and in again.')
    return jsonify(state.to_dict())


@game.route('/folders', methods=['GET'])
@login_required
def get_all_folders():
    folders = Folder.query.order_by(Folder.order.asc()).all()
    return jsonify([f.to_dict() for f in folders])


@game.route('/folder/<int:folder_id>', methods=['GET'])
@login_required
def get_folder(folder_id):
    details = get_folder_details(current_user.id, folder_id)
    return jsonify(details.to_dict())


@game.route('/answer/<int:folder_id>', methods=['POST'])
@login_required
def submit_answer(folder_id):
    data = request.get_json(silent=True) or {}
    result = svc_submit_answer(current_user.id, folder_id, data.get('answer'))
    current_app.logger.info(f"[answer] user={current_user.id} folder={folder_id} status={result.status.value}")

    if result.status == SubmissionStatus.INCORRECT:
        return jsonify({'status': result.status.value, 'message': 'Incorrect answer. Try again!'}), 400
    if result.status == SubmissionStatus.ADVANCED:
        return jsonify({
            'status': result.status.value,
            'message': 'Correct answer! Here is the next part of the riddle.',
            'unlocked': False,
            'nextRiddle': result.next_riddle.to_public_dict(),
        })
    if result.status == SubmissionStatus.ALREADY_UNLOCKED:
        return jsonify({
            'status': result.status.value,
            'message': 'This folder is already unlocked.',
            'unlocked': True,
            'unlockedCount': result.unlocked_count,
        })
    return jsonify({
        'status': result.status.value,
        'message': 'Correct answer! Folder unlocked!',
        'unlocked': True,
        'unlockedCount': result.unlocked_count,
    })
