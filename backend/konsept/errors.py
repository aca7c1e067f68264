"""Error taxonomy shared by services, HTTP routes and socket handlers."""

from flask import jsonify


class KonseptError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(KonseptError):
    """Malformed or cross-context input, e.g. a round from another game."""
    status_code = 400


class PreconditionError(KonseptError):
    """Operation refused by a policy guard, e.g. no participants yet."""
    status_code = 409


class NotFoundError(KonseptError):
    status_code = 404


class StoreError(KonseptError):
    """The database refused or failed the operation."""
    status_code = 500


class PermissionDeniedError(StoreError):
    status_code = 403


def register_error_handlers(app) -> None:
    @app.errorhandler(KonseptError)
    def handle_konsept_error(exc):
        if isinstance(exc, StoreError) and not isinstance(exc, PermissionDeniedError):
            app.logger.error(f"[store-error] {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify({'error': 'Not found'}), 404
