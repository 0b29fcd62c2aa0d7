from scorekeeper import db, bcrypt
from flask_login import UserMixin

from scorekeeper.services.rooms.room import Identity


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    avatar = db.Column(db.String(256), nullable=False, default='')
    password_hash = db.Column(db.String(256), nullable=False)

    def __init__(self, **kwargs):
        super(User, self).__init__(**kwargs)
        if not self.avatar and self.username:
            self.avatar = f"https://picsum.photos/seed/{self.username}/100/100"

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_identity(self) -> Identity:
        return Identity(user_id=str(self.id), display_name=self.username, avatar_ref=self.avatar)

    def to_dict(self):
        return {
            'id': str(self.id),
            'username': self.username,
            'avatar': self.avatar,
        }


class RoomRecord(db.Model):
    """Persisted room. ``state`` holds the JSON snapshot; the other columns
    are copies kept for lookups and the optimistic ``version`` check."""
    __tablename__ = 'room'
    id = db.Column(db.String(32), primary_key=True)
    join_code = db.Column(db.String(12), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default='waiting', index=True)
    host_id = db.Column(db.String(64), nullable=False)
    version = db.Column(db.Integer, nullable=False, default=0)
    state = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.Float, nullable=False)
    finished_at = db.Column(db.Float, nullable=True)
    members = db.relationship('RoomMember', back_populates='room', cascade='all, delete-orphan')


class RoomMember(db.Model):
    __tablename__ = 'room_member'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(32), db.ForeignKey('room.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    total_score = db.Column(db.Numeric(20, 2), nullable=False, default=0)
    room = db.relationship('RoomRecord', back_populates='members')
