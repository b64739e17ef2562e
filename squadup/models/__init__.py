# Import all models here so they're registered with SQLAlchemy
from squadup.models.squad import Squad, DISCIPLINES, CONTACT_METHODS
from squadup.models.squad_member import SquadMember
from squadup.models.profile import Profile

__all__ = ['Squad', 'SquadMember', 'Profile', 'DISCIPLINES', 'CONTACT_METHODS']
