"""
Squad deletion behind a PIN or admin override.

Anyone signed in who knows a squad's PIN may delete it; ownership isn't
checked beyond that. Admins don't need the PIN.
"""

from flask import current_app

from squadup.errors import InvalidCredential, NotFound, Unauthenticated
from squadup.services.auth import Admin, Anonymous, User
from squadup.services.pin_service import verify_pin
from squadup.services.squad_store import delete_squad, get_squad


def request_delete(squad_id, caller, pin=None):
    """
    Delete a squad on behalf of the caller.

    Raises:
        Unauthenticated: nobody signed in
        NotFound: squad doesn't exist (checked before the PIN)
        InvalidCredential: missing or wrong PIN
    """
    if isinstance(caller, Admin):
        delete_squad(squad_id)
        current_app.logger.info(f"Admin {caller.id} deleted squad {squad_id}")
        return

    if isinstance(caller, Anonymous):
        raise Unauthenticated()

    if not isinstance(caller, User):
        raise TypeError(f'Unknown caller type: {type(caller).__name__}')

    squad = get_squad(squad_id)
    if squad is None:
        raise NotFound()

    if not pin or not verify_pin(pin, squad.pin_hash):
        current_app.logger.warning(f"Rejected PIN for squad {squad_id} from {caller.id}")
        raise InvalidCredential()

    delete_squad(squad_id)
    current_app.logger.info(f"Squad {squad_id} deleted by {caller.id} with PIN")
