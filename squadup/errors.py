"""
Error taxonomy for squad operations.

Services raise these; the app factory turns them into JSON responses.
Each error carries a stable ``kind`` so callers can tell a wrong PIN
apart from a squad that no longer exists.
"""


class SquadUpError(Exception):
    """Base class for errors surfaced to the caller."""
    kind = 'error'
    status_code = 400
    default_message = 'Something went wrong'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {
            'success': False,
            'error': self.kind,
            'message': self.message,
        }


class ValidationError(SquadUpError):
    """Bad input shape or range. Never reaches the store."""
    kind = 'validation_error'
    status_code = 400

    def __init__(self, field, message):
        self.field = field
        super().__init__(f'{field}: {message}')

    def to_dict(self):
        data = super().to_dict()
        data['field'] = self.field
        return data


class Unauthenticated(SquadUpError):
    kind = 'unauthenticated'
    status_code = 401
    default_message = 'You must be signed in'


class Unauthorized(SquadUpError):
    kind = 'unauthorized'
    status_code = 403
    default_message = 'You are not authorized to do that'


class InvalidCredential(SquadUpError):
    kind = 'invalid_credential'
    status_code = 403
    default_message = 'Incorrect PIN'


class NotFound(SquadUpError):
    kind = 'not_found'
    status_code = 404
    default_message = 'Squad not found'


class Unavailable(SquadUpError):
    """The datastore could not be reached. Safe to retry."""
    kind = 'unavailable'
    status_code = 503
    default_message = 'The squad database is unavailable, please try again'


class Conflict(SquadUpError):
    kind = 'conflict'
    status_code = 409
    default_message = 'Squad became full'


class SquadFull(Conflict):
    kind = 'squad_full'
    default_message = 'Squad is full'
