from squadup import db
from squadup.models.types import UTCDateTime, utcnow


class SquadMember(db.Model):
    """A user's spot in a squad."""
    __tablename__ = 'squad_members'

    id = db.Column(db.Integer, primary_key=True)
    squad_id = db.Column(db.String(36), db.ForeignKey('squads.id', ondelete='CASCADE'), nullable=False, index=True)
    member_id = db.Column(db.String(64), nullable=False, index=True)
    is_leader = db.Column(db.Boolean, default=False, nullable=False)
    joined_at = db.Column(UTCDateTime, default=utcnow)

    # Unique constraint: one spot per member per squad
    __table_args__ = (
        db.UniqueConstraint('squad_id', 'member_id', name='unique_squad_member'),
    )

    def __repr__(self):
        return f'<SquadMember squad={self.squad_id} member={self.member_id}>'
