from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_marshmallow import Marshmallow

from .utils.rate_limit import RateLimiter

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
ma = Marshmallow()

# Process-wide attempt counters for login/registration. Not shared across
# server instances and lost on restart.
rate_limiter = RateLimiter()
