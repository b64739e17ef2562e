"""
Caller identity.

Identity comes from an outside auth provider; this module only remembers
who signed in (in the Flask session) and hands every service an explicit
``Caller`` instead of letting services read the session themselves.

A caller is exactly one of:
- ``Anonymous``: nobody signed in
- ``User``: a signed-in user
- ``Admin``: a signed-in user with admin rights
"""

import secrets
from dataclasses import dataclass
from typing import Optional
from flask import session, current_app

from squadup import db
from squadup.errors import Unauthenticated, Unauthorized
from squadup.models import Profile
from squadup.services.pin_service import hash_pin, verify_pin

# How the session proved admin rights at sign-in
ADMIN_VIA_PASSWORD = 'password'
ADMIN_VIA_TOKEN = 'token'
ADMIN_TOKEN_BYTES = 32


@dataclass(frozen=True)
class Anonymous:
    is_authenticated = False
    is_admin = False


@dataclass(frozen=True)
class User:
    id: str
    display_name: Optional[str] = None
    is_authenticated = True
    is_admin = False


@dataclass(frozen=True)
class Admin:
    id: str
    display_name: Optional[str] = None
    is_authenticated = True
    is_admin = True


ANONYMOUS = Anonymous()


def require_user(caller):
    """Return the caller if signed in (user or admin), else raise Unauthenticated."""
    if isinstance(caller, (User, Admin)):
        return caller
    raise Unauthenticated()


def require_admin(caller):
    if isinstance(caller, Admin):
        return caller
    if isinstance(caller, User):
        raise Unauthorized('Admin access required')
    raise Unauthenticated()


class AuthEvents:
    """Callbacks fired whenever someone signs in or out."""

    def __init__(self):
        self._callbacks = []

    def subscribe(self, callback):
        self._callbacks.append(callback)

        def unsubscribe():
            if callback in self._callbacks:
                self._callbacks.remove(callback)
        return unsubscribe

    def publish(self, caller):
        for callback in list(self._callbacks):
            try:
                callback(caller)
            except Exception:
                current_app.logger.exception('Auth change callback failed')


auth_events = AuthEvents()


def on_auth_change(callback):
    """Register a callback receiving the new caller on every sign-in/out. Returns an unsubscribe function."""
    return auth_events.subscribe(callback)


def get_current_caller():
    """
    Build the caller for the current request from the Flask session.

    Admin rights need proof at sign-in: the shared admin password, or the
    admin token issued to a profile by ``flask promote-admin``. A profile's
    ``is_admin`` flag alone grants nothing, and a token session loses its
    rights as soon as the flag is revoked.
    """
    user_id = session.get('user_id')
    if not user_id:
        return ANONYMOUS

    display_name = session.get('display_name')
    admin_via = session.get('admin_authenticated')
    if admin_via == ADMIN_VIA_PASSWORD:
        return Admin(id=user_id, display_name=display_name)

    if admin_via == ADMIN_VIA_TOKEN:
        profile = db.session.get(Profile, user_id)
        if profile and profile.is_admin:
            return Admin(id=user_id, display_name=display_name)
    return User(id=user_id, display_name=display_name)


def issue_admin_token(profile):
    """Give an admin profile a fresh sign-in token. Only the hash is stored. Does not commit."""
    token = secrets.token_urlsafe(ADMIN_TOKEN_BYTES)
    profile.admin_token_hash = hash_pin(token)
    return token


def check_admin_token(user_id, token):
    """True if ``token`` was issued to ``user_id`` and the profile is still an admin."""
    profile = db.session.get(Profile, user_id)
    if profile is None or not profile.is_admin or not profile.admin_token_hash:
        return False
    return verify_pin(token, profile.admin_token_hash)


def sign_in(user_id, display_name=None, admin_via=None):
    """
    Remember an identity asserted by the auth provider.

    ``admin_via`` is ADMIN_VIA_PASSWORD or ADMIN_VIA_TOKEN once the route
    has checked the matching credential, None otherwise.
    """
    session['user_id'] = user_id
    session['display_name'] = display_name
    if admin_via:
        session['admin_authenticated'] = admin_via
    else:
        session.pop('admin_authenticated', None)
    session.permanent = True

    caller = get_current_caller()
    current_app.logger.info(f"sign_in: user={user_id}, admin={caller.is_admin}")
    auth_events.publish(caller)
    return caller


def sign_out():
    session.pop('user_id', None)
    session.pop('display_name', None)
    session.pop('admin_authenticated', None)
    auth_events.publish(ANONYMOUS)
