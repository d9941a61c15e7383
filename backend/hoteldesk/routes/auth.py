from flask import Blueprint, request, abort, g, current_app
from flask_jwt_extended import create_access_token
from sqlalchemy import select
from hoteldesk.decorators.auth import login_required
from hoteldesk.models.user import User
from hoteldesk.routes.users import user_json
from hoteldesk import get_db

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/auth/login')
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == str(email).strip().lower())).scalar_one_or_none()
    if not user or not user.is_active or not user.verify_password(password):
        current_app.logger.warning('Failed login for %s', email)
        abort(401, description='invalid credentials')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role, 'language': user.language})
    return {'access_token': token, 'user': user_json(user)}


@auth_bp.get('/auth/me')
@login_required
def me():
    body = user_json(g.current_user)
    body['capabilities'] = g.capabilities.as_dict()
    return body
