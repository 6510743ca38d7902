from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from riddlegate import db
from riddlegate.models import User, GameState
from riddlegate.services.otp import get_otp_store
from riddlegate.services.mailer import send_otp_email
from riddlegate.services.progression.engine import record_activity

main = Blueprint('main', __name__)


def _ensure_game_state(user: User) -> GameState:
    state = GameState.query.filter_by(user_id=user.id).first()
    if state is None:
        state = GameState(user_id=user.id)
        db.session.add(state)
        db.session.commit()
        current_app.logger.info(f"[game_state] created for user={user.id}")
    return state


def _send_new_otp(email: str, subject: str) -> None:
    otp = get_otp_store().issue(email)
    send_otp_email(email, otp, subject=subject)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Riddlegate game server!'})


@main.route('/api/auth/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    roll_number = (data.get('rollNumber') or '').strip()
    password = data.get('password') or ''
    if not all([username, email, roll_number, password]):
        return jsonify({'error': 'Username, email, roll number and password are required', 'code': 'VALIDATION_ERROR'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'User with this email already exists.', 'code': 'EMAIL_EXISTS'}), 409
    if User.query.filter_by(roll_number=roll_number).first():
        return jsonify({'error': 'User with this roll number already exists.', 'code': 'ROLL_NUMBER_EXISTS'}), 409

    user = User(username=username, email=email, roll_number=roll_number)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    _send_new_otp(email, 'Verify Your Riddle Game Account')
    return jsonify({
        'message': 'User registered successfully. OTP sent to your email for verification.',
        'userId': user.id,
        'email': user.email,
    }), 201


@main.route('/api/auth/verify-otp', methods=['POST'])
def verify_otp():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({'error': 'User not found.', 'code': 'USER_NOT_FOUND'}), 404
    if user.is_verified:
        return jsonify({'message': 'Account already verified. Please proceed to login.', 'alreadyVerified': True})

    store = get_otp_store()
    if not store.verify(email, data.get('otp')):
        return jsonify({'error': 'Invalid or expired OTP. Please try again or resend.', 'code': 'INVALID_OR_EXPIRED_OTP'}), 400

    user.is_verified = True
    db.session.commit()
    store.clear(email)
    _ensure_game_state(user)
    return jsonify({'message': 'Account verified successfully! You can now log in.'})


@main.route('/api/auth/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({'error': 'User not found with this email.', 'code': 'USER_NOT_FOUND'}), 404
    if not user.check_password(data.get('password') or ''):
        return jsonify({'error': 'Invalid credentials. Password does not match.', 'code': 'INVALID_CREDENTIALS'}), 401
    if not user.is_verified:
        _send_new_otp(email, 'Verify Your Riddle Game Account')
        return jsonify({
            'error': 'Your account is not verified. A new OTP has been sent to your email.',
            'code': 'ACCOUNT_NOT_VERIFIED',
            'email': user.email,
        }), 403

    _ensure_game_state(user)
    login_user(user, remember=True)
    record_activity(user.id)
    return jsonify({'message': 'Login successful!', 'user': user.to_dict()})


@main.route('/api/auth/resend-otp', methods=['POST'])
@main.route('/api/otp/resend', methods=['POST'])
def resend_otp():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({'error': 'User not found with this email.', 'code': 'USER_NOT_FOUND'}), 404
    if user.is_verified:
        return jsonify({'error': 'Account is already verified. No need to resend OTP.', 'code': 'ALREADY_VERIFIED'}), 400
    _send_new_otp(email, 'Your OTP for Riddle Game')
    return jsonify({'message': 'New OTP sent to your email.'})


@main.route('/api/auth/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})


@main.route('/api/auth/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})
