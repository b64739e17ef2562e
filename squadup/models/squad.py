import uuid
from squadup import db
from squadup.models.types import UTCDateTime, utcnow


DISCIPLINES = ('sporting_clays', 'five_stand', 'trap', 'skeet', 'other')
CONTACT_METHODS = ('email', 'phone', 'text')


def new_squad_id():
    return str(uuid.uuid4())


class Squad(db.Model):
    """Scheduled group shooting session with a fixed number of spots."""
    __tablename__ = 'squads'

    id = db.Column(db.String(36), primary_key=True, default=new_squad_id)
    title = db.Column(db.String(200), nullable=False)
    discipline = db.Column(db.String(20), nullable=False)  # sporting_clays, five_stand, trap, skeet, other
    range_name = db.Column(db.String(200), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(100), nullable=False)
    scheduled_at = db.Column(UTCDateTime, nullable=False, index=True)
    capacity = db.Column(db.Integer, nullable=False)
    contact_method = db.Column(db.String(10), nullable=False)  # email, phone, text
    contact_value = db.Column(db.String(200), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(64), nullable=False, index=True)
    pin_hash = db.Column(db.String(100), nullable=False)
    created_at = db.Column(UTCDateTime, default=utcnow)

    # Relationships
    members = db.relationship('SquadMember', backref='squad', lazy='dynamic',
                              cascade='all, delete-orphan', passive_deletes=True)

    __table_args__ = (
        db.CheckConstraint('capacity >= 1', name='check_squad_capacity_positive'),
    )

    # Filled in by the store on every read, never persisted
    member_count = None

    @property
    def spots_left(self):
        """Open spots for display. Clamped at zero if a join race overfilled the squad."""
        return max(self.capacity - (self.member_count or 0), 0)

    @property
    def is_full(self):
        return self.spots_left == 0

    @property
    def over_capacity(self):
        return (self.member_count or 0) > self.capacity

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'discipline': self.discipline,
            'range_name': self.range_name,
            'city': self.city,
            'state': self.state,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'capacity': self.capacity,
            'member_count': self.member_count or 0,
            'spots_left': self.spots_left,
            'is_full': self.is_full,
            'contact_method': self.contact_method,
            'contact_value': self.contact_value,
            'notes': self.notes,
            'created_by': self.created_by,
        }

    def __repr__(self):
        return f'<Squad {self.title} {self.scheduled_at}>'
