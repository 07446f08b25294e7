from flask import Flask


def register_routes(app: Flask):
    """Register every API blueprint on the application."""
    # imported here so the extensions are bound before the views load
    from .auth_routes import auth_bp
    from .blog_routes import blog_bp
    from .health_routes import health_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(blog_bp, url_prefix='/api/blogs')
    app.register_blueprint(health_bp)
