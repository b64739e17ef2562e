"""
JSON API for squads.

Includes:
- Browse upcoming squads, my squads, admin list
- Create a squad
- Join / leave
- Delete with PIN (or as admin)

Service errors (validation, auth, PIN, not found, full, unavailable) are
turned into JSON responses by the handler registered in create_app.
"""

from flask import Blueprint, jsonify

from squadup.errors import NotFound
from squadup.routes import json_object
from squadup.services.auth import get_current_caller
from squadup.services import squad_store, membership, access, views

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _listing(squads):
    return jsonify({
        'success': True,
        'squads': [squad.to_dict() for squad in squads],
    })


@api_bp.route('/squads')
def browse_squads():
    """Upcoming squads, soonest first."""
    return _listing(views.browse())


@api_bp.route('/squads/mine')
def my_squads():
    """Squads the signed-in user created or joined."""
    return _listing(views.mine(get_current_caller()))


@api_bp.route('/admin/squads')
def admin_squads():
    """Every squad, past and upcoming. Admins only."""
    return _listing(views.admin(get_current_caller()))


@api_bp.route('/squads/<squad_id>')
def get_squad(squad_id):
    squad = squad_store.get_squad(squad_id)
    if squad is None:
        raise NotFound()
    return jsonify({'success': True, 'squad': squad.to_dict()})


@api_bp.route('/squads', methods=['POST'])
def create_squad():
    """
    Create a squad.

    Body fields: title, discipline, range_name, city, state, scheduled_date
    (YYYY-MM-DD), scheduled_time (HH:MM), timezone (IANA name, optional),
    capacity, contact_method, contact_value, pin, notes (optional).
    """
    fields = json_object()
    squad = squad_store.create_squad(fields, get_current_caller())
    return jsonify({'success': True, 'squad': squad.to_dict()}), 201


@api_bp.route('/squads/<squad_id>/join', methods=['POST'])
def join_squad(squad_id):
    result = membership.join(squad_id, get_current_caller())
    return jsonify({'success': True, 'joined': result.joined})


@api_bp.route('/squads/<squad_id>/leave', methods=['POST'])
def leave_squad(squad_id):
    membership.leave(squad_id, get_current_caller())
    return jsonify({'success': True})


@api_bp.route('/squads/<squad_id>/delete', methods=['POST'])
def delete_squad(squad_id):
    """Delete a squad. Non-admins must send the squad's PIN."""
    data = json_object()
    access.request_delete(squad_id, get_current_caller(), pin=data.get('pin'))
    return jsonify({'success': True})
