# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Committed sales/entries are returned to callers after the unit of work ends;
# keep their loaded attributes instead of expiring them on commit.
db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
