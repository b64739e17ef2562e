"""Flask CLI commands for squad administration."""

import click

from squadup import db
from squadup.services.auth import issue_admin_token
from squadup.services.squad_store import ensure_profile


def register_commands(app):
    @app.cli.command('promote-admin')
    @click.argument('user_id')
    @click.option('--revoke', is_flag=True, help='Remove admin rights instead.')
    def promote_admin(user_id, revoke):
        """Grant (or revoke) admin rights for USER_ID and print its sign-in token."""
        profile = ensure_profile(user_id)
        if revoke:
            profile.is_admin = False
            profile.admin_token_hash = None
            db.session.commit()
            click.echo(f'Admin revoked for {user_id}')
            return

        profile.is_admin = True
        token = issue_admin_token(profile)
        db.session.commit()
        click.echo(f'Admin granted for {user_id}')
        # Shown once; only the hash is kept
        click.echo(f'Admin token: {token}')
