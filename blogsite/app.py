import os
import logging
from logging.handlers import RotatingFileHandler
from urllib.parse import urlparse

from dotenv import load_dotenv
from flask import Flask
from pymongo import MongoClient
from werkzeug.middleware.proxy_fix import ProxyFix

from blogsite.cache import build_cache
from blogsite.errors import register_error_handlers
from blogsite.extensions import bcrypt, cors, limiter
from blogsite.log_utils import log_request
from blogsite.security import init_security
from blogsite.store import Store
from blogsite.tokens import DEFAULT_EXPIRES_IN

load_dotenv()

DEV_ORIGINS = ['http://localhost:5173', 'http://localhost:3000', 'http://localhost:5174']


def configure_logging(app):
    # app.logger is "blogsite.app", so it propagates to the package logger
    package_logger = logging.getLogger('blogsite')
    package_logger.setLevel(logging.INFO)

    if not app.testing and app.config.get('LOG_DIR'):
        log_dir = app.config['LOG_DIR']
        if not os.path.exists(log_dir):
            os.mkdir(log_dir)
        log_path = os.path.abspath(os.path.join(log_dir, 'blogsite.log'))
        if not any(getattr(h, 'baseFilename', None) == log_path for h in package_logger.handlers):
            file_handler = RotatingFileHandler(log_path, maxBytes=10240, backupCount=10)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'))
            file_handler.setLevel(logging.INFO)
            package_logger.addHandler(file_handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info('blogsite startup')


def load_config(app, test_config=None):
    app.config['ENV_NAME'] = os.environ.get('APP_ENV') or os.environ.get('FLASK_ENV', 'development')
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev')
    app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET_KEY')
    app.config['JWT_EXPIRES_IN'] = int(os.environ.get('JWT_EXPIRES_IN', DEFAULT_EXPIRES_IN))
    app.config['BCRYPT_LOG_ROUNDS'] = int(os.environ.get('BCRYPT_LOG_ROUNDS', 12))
    app.config['MAX_CONTENT_LENGTH'] = 1024 * 1024
    app.config['REDIS_URL'] = os.environ.get('REDIS_URL')
    app.config['CACHE_TTL'] = int(os.environ.get('CACHE_TTL', 60))
    app.config['LOG_DIR'] = os.environ.get('LOG_DIR', 'logs')
    app.config['MONGO_RETRY_INTERVAL'] = int(os.environ.get('MONGO_RETRY_INTERVAL', 5))

    app.config['RATE_LIMIT_DEFAULT'] = os.environ.get('RATE_LIMIT_DEFAULT', '100 per 15 minutes')
    app.config['RATE_LIMIT_AUTH'] = os.environ.get('RATE_LIMIT_AUTH', '10 per 15 minutes')
    app.config['RATELIMIT_STORAGE_URI'] = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    app.config['RATELIMIT_HEADERS_ENABLED'] = True

    origins = os.environ.get('ALLOWED_ORIGINS')
    app.config['ALLOWED_ORIGINS'] = origins.split(',') if origins else DEV_ORIGINS

    mongo_uri = os.environ.get('MONGO_URL') or os.environ.get('MONGODB_URI') or os.environ.get('MONGO_URI')
    app.config['MONGO_URI'] = mongo_uri
    db_name = urlparse(mongo_uri).path.lstrip('/') if mongo_uri else None
    app.config['MONGO_DBNAME'] = db_name or 'blogsite'

    if test_config:
        app.config.from_mapping(test_config)

    if not app.config['JWT_SECRET_KEY']:
        if app.config['ENV_NAME'] == 'production':
            raise ValueError('JWT_SECRET_KEY must be set in production.')
        app.logger.warning('JWT_SECRET_KEY is not set, falling back to the development key.')
        app.config['JWT_SECRET_KEY'] = 'local-dev-jwt-secret-key-for-testing'


def connect_store(app):
    if not app.config['MONGO_URI']:
        raise ValueError('MONGO_URL or MONGO_URI must be set.')
    client = MongoClient(app.config['MONGO_URI'], serverSelectionTimeoutMS=30000,
                         socketTimeoutMS=45000, connectTimeoutMS=30000)
    store = Store(client[app.config['MONGO_DBNAME']], client=client)
    store.wait_until_ready(app.config['MONGO_RETRY_INTERVAL'])
    store.ensure_indexes()
    return store


def create_app(test_config=None, store=None, cache=None):
    """Application factory.

    `store` and `cache` may be passed in already built; otherwise they are
    created from MONGO_URI and REDIS_URL.
    """
    app = Flask(__name__)
    load_config(app, test_config)
    configure_logging(app)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # --- extensions ---
    bcrypt.init_app(app)
    limiter.init_app(app)
    cors.init_app(
        app,
        resources={r'/api/*': {'origins': app.config['ALLOWED_ORIGINS']}},
        supports_credentials=True,
        methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS', 'PATCH'],
        allow_headers=['Content-Type', 'Authorization'],
    )

    # --- storage ---
    app.extensions['blogsite.store'] = store or connect_store(app)
    app.extensions['blogsite.cache'] = cache or build_cache(app.config['REDIS_URL'])

    # --- request pipeline ---
    init_security(app)
    app.before_request(log_request)
    register_error_handlers(app)

    from blogsite.routes import register_routes
    register_routes(app)

    @app.cli.command('init-db')
    def init_db_command():
        app.extensions['blogsite.store'].ensure_indexes()
        app.logger.info('Indexes created')

    return app


def main():
    app = create_app()
    port = int(os.environ.get('PORT', 5000))
    app.logger.info(f"Server running on port {port}, worker: {os.getpid()}")
    try:
        app.run(host='0.0.0.0', port=port, debug=app.config['ENV_NAME'] != 'production')
    finally:
        app.extensions['blogsite.store'].close()
        app.extensions['blogsite.cache'].close()


if __name__ == '__main__':
    main()
