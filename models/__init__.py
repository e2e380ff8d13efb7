"""
Persistence package.

`storage` is the process-wide DBStorage; create_app() points it at the
configured database and creates the tables.
"""
from models.db_storage import DBStorage

storage = DBStorage()
