# rx_app_pkg/auth/routes.py
from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import IntegrityError
import datetime
from .. import db
from ..models import User, TokenBlacklist
from ..utils import create_access_token, permission_required

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not data: return jsonify({"message": "Request body must be JSON."}), 400
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        return jsonify({"message": "Username and password are required."}), 400

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        current_app.logger.warning(f"Failed login attempt for username: {username}")
        return jsonify({"message": "Invalid username or password."}), 401
    if not user.is_active:
        current_app.logger.warning(f"Inactive user login attempt: {username}")
        return jsonify({"message": "User account is inactive."}), 403

    access_token = create_access_token(user_id=user.id, user_permissions=user.get_permissions())
    current_app.logger.info(f"User '{username}' logged in successfully.")
    return jsonify({
        "message": "Login successful.",
        "access_token": access_token,
        "user": user.to_dict()
    }), 200


@auth_bp.route('/logout', methods=['POST'])
@permission_required('user:logout')
def logout():
    jti = getattr(g, 'current_token_jti', None)
    token_exp = getattr(g, 'current_token_exp', None)
    if not jti or token_exp is None:
        return jsonify({"message": "Token information unavailable for logout."}), 400

    try:
        db.session.add(TokenBlacklist(
            jti=jti,
            expires_at=datetime.datetime.fromtimestamp(token_exp, datetime.timezone.utc).replace(tzinfo=None)
        ))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning(f"IntegrityError: Attempt to re-blacklist token JTI: {jti}")
        return jsonify({"message": "Token already revoked."}), 400

    current_app.logger.info(f"User {g.current_user.id} logged out. Token JTI {jti} blacklisted.")
    return jsonify({"message": "Logged out successfully."}), 200
