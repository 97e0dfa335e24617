from werkzeug.security import generate_password_hash, check_password_hash
from pagepub.extensions import db
from .base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)

    role = db.Column(db.String(50), nullable=False, default="user")
    # Group names exposed to section conditions as `user_group`
    groups = db.Column(db.JSON, nullable=False, default=list)
    language_id = db.Column(db.Integer, nullable=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)
