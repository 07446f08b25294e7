from flask import Blueprint, jsonify, g, current_app

from blogsite.auth import token_required
from blogsite.errors import Conflict, NotFound, ValidationError
from blogsite.extensions import limiter
from blogsite.models import User, utcnow
from blogsite.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UpdateSettingsRequest,
    parse,
)
from blogsite.store import get_store
from blogsite.tokens import issue_token

auth_bp = Blueprint('auth_api', __name__)


def api_rate_limit():
    return current_app.config['RATE_LIMIT_DEFAULT']


def auth_rate_limit():
    return current_app.config['RATE_LIMIT_AUTH']


limiter.limit(api_rate_limit)(auth_bp)
# login and register draw from one counter
auth_limit = limiter.shared_limit(auth_rate_limit, scope='auth')


def issue_for(user):
    return issue_token(user._id, user.role,
                       current_app.config['JWT_SECRET_KEY'],
                       current_app.config['JWT_EXPIRES_IN'])


# --- registration / login ---

@auth_bp.route('/register', methods=['POST'])
@auth_limit
def register():
    data = parse(RegisterRequest, g.payload)
    users = get_store().users

    if users.is_taken('email', data.email):
        raise Conflict('User already exists', status_code=400)
    if users.is_taken('username', data.username):
        raise Conflict('Username already taken', status_code=400)

    user = User.register(data.username, data.email, data.password)
    users.insert(user)
    current_app.logger.info(f"User registered: {user.id}")

    return jsonify({'token': issue_for(user), 'user': user.profile()}), 201


@auth_bp.route('/login', methods=['POST'])
@auth_limit
def login():
    data = parse(LoginRequest, g.payload)
    users = get_store().users

    user = users.find_by_email(data.email, with_password=True)
    # same answer for unknown email and wrong password
    if user is None or not user.check_password(data.password):
        raise ValidationError('Invalid credentials')
    if not user.is_active:
        raise ValidationError('Invalid credentials')

    user.last_login = utcnow()
    users.update_fields(user._id, {'last_login': user.last_login})

    return jsonify({'token': issue_for(user), 'user': user.profile()}), 200


# --- account ---

@auth_bp.route('/me', methods=['GET'])
@token_required
def me():
    return jsonify(g.current_user.account()), 200


@auth_bp.route('/update-profile', methods=['PUT'])
@token_required
def update_profile():
    data = parse(UpdateProfileRequest, g.payload)
    user = g.current_user
    users = get_store().users
    fields = {}

    if data.email and data.email != user.email:
        if users.is_taken('email', data.email, exclude_id=user._id):
            raise Conflict('Email already in use', status_code=400)
        fields['email'] = user.email = data.email
    if data.username and data.username != user.username:
        if users.is_taken('username', data.username, exclude_id=user._id):
            raise Conflict('Username already taken', status_code=400)
        fields['username'] = user.username = data.username
    if data.avatar_url:
        fields['avatar_url'] = user.avatar_url = data.avatar_url
    if data.phone_number is not None:
        fields['phone_number'] = user.phone_number = data.phone_number

    if fields:
        users.update_fields(user._id, fields)
    return jsonify({'user': user.profile()}), 200


@auth_bp.route('/update-settings', methods=['PUT'])
@token_required
def update_settings():
    data = parse(UpdateSettingsRequest, g.payload)
    user = g.current_user
    fields = {}

    if data.dark_mode is not None:
        fields['preferences.dark_mode'] = user.preferences['dark_mode'] = data.dark_mode
    if data.email_notifications is not None:
        fields['preferences.email_notifications'] = user.preferences['email_notifications'] = data.email_notifications
    if data.language:
        fields['preferences.language'] = user.preferences['language'] = data.language

    if fields:
        get_store().users.update_fields(user._id, fields)
    return jsonify({'user': user.profile()}), 200


@auth_bp.route('/change-password', methods=['PUT'])
@token_required
def change_password():
    data = parse(ChangePasswordRequest, g.payload)
    users = get_store().users

    user = users.get(g.current_user._id, with_password=True)
    if user is None:
        raise NotFound('User not found')
    if not user.check_password(data.current_password):
        raise ValidationError('Current password is incorrect')

    user.set_password(data.new_password)
    users.update_fields(user._id, {
        'password': user.password,
        'password_changed_at': user.password_changed_at,
    })
    current_app.logger.info(f"Password changed for user {user.id}")

    # tokens issued before the change stop working, so hand out a new one
    return jsonify({'message': 'Password updated successfully', 'token': issue_for(user)}), 200
