# gunicorn blogsite.wsgi:app
from blogsite.app import create_app

app = create_app()
