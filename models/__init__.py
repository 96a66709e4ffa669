"""
Persistence layer: SQLAlchemy models and the process-wide ``storage``.

The engine is built lazily by ``storage.connect(url)``, which the app
factory calls with the configured DATABASE_URL.
"""
from models.db_storage import DBStorage

storage = DBStorage()
