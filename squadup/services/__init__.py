# Business logic services
from squadup.services.squad_store import SquadFilter, create_squad, delete_squad, get_squad, list_squads
from squadup.services.membership import JoinResult, join, leave
from squadup.services.access import request_delete
from squadup.services.views import SquadView, browse, mine, admin, build_projection
from squadup.services.change_feed import change_feed

__all__ = [
    'SquadFilter',
    'create_squad',
    'delete_squad',
    'get_squad',
    'list_squads',
    'JoinResult',
    'join',
    'leave',
    'request_delete',
    'SquadView',
    'browse',
    'mine',
    'admin',
    'build_projection',
    'change_feed',
]
