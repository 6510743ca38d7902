"""Game error taxonomy and its mapping onto JSON responses.

Every error here is recoverable at the request boundary. Configuration errors
are content bugs (a folder without a riddle, a dangling chain pointer) and are
logged loudly so operators can tell them apart from client mistakes.
"""
from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError


class GameError(Exception):
    status_code = 500
    code = 'GAME_ERROR'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class NotFoundError(GameError):
    status_code = 404
    code = 'NOT_FOUND'


class LockedError(GameError):
    status_code = 403
    code = 'LOCKED'


class ValidationError(GameError):
    status_code = 400
    code = 'VALIDATION_ERROR'


class ConfigurationError(GameError):
    status_code = 500
    code = 'CONFIGURATION_ERROR'


def register_error_handlers(flask_app) -> None:
    from riddlegate import db

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc: GameError):
        if isinstance(exc, ConfigurationError):
            current_app.logger.error(f"[config] {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception(f"[db] unhandled persistence error: {exc}")
        return jsonify({'error': 'Internal server error. Please try again.', 'code': 'SERVER_ERROR'}), 500
