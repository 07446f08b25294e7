from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Flask extension instances shared across the package.
# They are bound to the application in app.create_app().
bcrypt = Bcrypt()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)
