import os

from flask import Blueprint, jsonify

from blogsite.cache import get_cache
from blogsite.store import get_store

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health():
    database = 'connected' if get_store().ping() else 'disconnected'
    cache = 'connected' if get_cache().ping() else 'disabled'
    return jsonify({
        'status': 'ok',
        'server': 'running',
        'pid': os.getpid(),
        'database': database,
        'cache': cache,
    }), 200
