"""
Identity comes from a header set by the access proxy in front of the app.
The proxy has already authenticated the user; we only map the email to a
stable user id and make sure a User row exists for it.
"""
import hashlib
import logging

from flask import current_app, jsonify
from flask_login import LoginManager
from sqlalchemy.exc import IntegrityError

from .models import db, User
from .display_names import generate_display_name

logger = logging.getLogger(__name__)

login_manager = LoginManager()


def hash_email(email: str) -> str:
    """Stable user id: first 32 hex chars of sha256 of the lower-cased email."""
    return hashlib.sha256(email.strip().lower().encode('utf-8')).hexdigest()[:32]


def ensure_user(email: str) -> User:
    """Fetch the user for an email, creating it with a random alias on first sight."""
    user_id = hash_email(email)
    user = User.query.filter_by(id=user_id).first()
    if user:
        return user

    user = User(id=user_id, email=email.strip().lower(), alias=generate_display_name())
    db.session.add(user)
    try:
        db.session.commit()
        logger.info(f"Created user {user_id} as '{user.alias}'")
    except IntegrityError:
        # Created by a concurrent request
        db.session.rollback()
        user = User.query.filter_by(id=user_id).first()
    return user


@login_manager.request_loader
def load_user_from_request(request):
    email = request.headers.get(current_app.config['IDENTITY_HEADER'])
    if not email:
        email = current_app.config.get('DEV_USER_EMAIL')
    if not email or not email.strip():
        return None
    return ensure_user(email)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Unauthorized'}), 401
