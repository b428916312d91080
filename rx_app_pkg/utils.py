# rx_app_pkg/utils.py
import jwt
import datetime
import uuid # For generating JTI
from functools import wraps
from flask import request, jsonify, current_app, g
from . import db
from .models import User, TokenBlacklist

# --- JWT Helper Functions ---
def create_access_token(user_id, user_permissions):
    """Creates a new JWT access token carrying the user's permissions."""
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        'exp': now + datetime.timedelta(minutes=current_app.config.get('JWT_EXPIRATION_MINUTES', 60)),
        'iat': now,
        'sub': str(user_id),
        'jti': str(uuid.uuid4()),
        'permissions': user_permissions
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm=current_app.config.get('JWT_ALGORITHM', 'HS256'))


def decode_access_token(token):
    """
    Decodes a JWT access token.
    Returns the payload if successful, or an error string if decoding fails.
    """
    algo = current_app.config.get('JWT_ALGORITHM', 'HS256')
    try:
        payload = jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=[algo])
    except jwt.ExpiredSignatureError:
        current_app.logger.info("Token decode failed: ExpiredSignatureError")
        return "Token has expired. Please log in again."
    except jwt.InvalidSignatureError:
        current_app.logger.warning("Token decode failed: InvalidSignatureError")
        return "Invalid token signature. Please log in again."
    except jwt.InvalidTokenError as e:
        current_app.logger.warning(f"Token decode failed: {e}")
        return "Invalid token. Please log in again."

    if TokenBlacklist.query.filter_by(jti=payload.get('jti')).first():
        current_app.logger.info(f"Attempt to use blacklisted token (jti: {payload.get('jti')})")
        return "Token has been revoked (logged out)."
    return payload


def get_current_user_from_token():
    auth_header = request.headers.get('Authorization')
    token = None
    if auth_header and auth_header.startswith('Bearer '):
        token = auth_header.split(" ")[1]

    if not token:
        g.authentication_error = "Token is missing!"
        return None

    payload = decode_access_token(token)
    if isinstance(payload, str): # Error message returned
        g.authentication_error = payload
        return None

    try:
        user_id = int(payload.get('sub', ''))
    except ValueError:
        g.authentication_error = "Invalid user ID format in token."
        return None

    user = db.session.get(User, user_id)
    if not user:
        g.authentication_error = "User from token not found in database."
        return None
    if not user.is_active:
        g.authentication_error = "User account is inactive."
        return None

    g.token_permissions = payload.get('permissions', [])
    g.current_token_jti = payload.get('jti')
    g.current_token_exp = payload.get('exp')
    return user


def permission_required(required_permission):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            current_user = get_current_user_from_token()

            if not current_user:
                error_message = getattr(g, 'authentication_error', "Authentication required.")
                return jsonify({"message": error_message}), 401

            g.current_user = current_user

            if required_permission not in getattr(g, 'token_permissions', []):
                return jsonify({"message": f"Permission '{required_permission}' required."}), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
