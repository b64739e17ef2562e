from squadup import db
from squadup.models.types import UTCDateTime, utcnow


class Profile(db.Model):
    """Display details for a user id issued by the auth provider."""
    __tablename__ = 'profiles'

    id = db.Column(db.String(64), primary_key=True)
    display_name = db.Column(db.String(120), nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    admin_token_hash = db.Column(db.String(100), nullable=True)  # bcrypt digest, set by promote-admin
    created_at = db.Column(UTCDateTime, default=utcnow)
    updated_at = db.Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f'<Profile {self.display_name or self.id}>'
