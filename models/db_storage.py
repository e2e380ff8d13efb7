from models.user import User
from models.refresh_token import RefreshToken
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from models.base_model import Base

logger = logging.getLogger(__name__)

# Map model names for easy querying
classes = {
    "User": User,
    "RefreshToken": RefreshToken,
}


class DBStorage:
    __engine = None
    __session = None

    def __init__(self, database_url: str | None = None, echo: bool = False):
        if database_url:
            self.configure(database_url, echo=echo)

    def configure(self, database_url: str, echo: bool = False):
        """Build the engine for DATABASE_URL (sqlite:// or postgresql://...)"""
        if database_url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise every thread sees an empty DB
                kwargs["poolclass"] = StaticPool
            self.__engine = create_engine(database_url, echo=echo, **kwargs)

            # Enable SQLite foreign keys (needed for ON DELETE SET NULL)
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        else:
            self.__engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    def reload(self):
        """Create tables and start session"""
        if self.__session is not None:
            self.__session.remove()
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def drop_all(self):
        """Drop every table (tests)"""
        if self.__session is not None:
            self.__session.remove()
        Base.metadata.drop_all(self.__engine)

    def all(self, cls):
        """Query every row of a model"""
        return self.__session.query(cls).all()

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def delete(self, obj=None):
        """Delete object if exists (hard delete)"""
        if obj:
            self.__session.delete(obj)

    def get(self, cls, id):
        """Fetch one object by class and ID"""
        if cls in classes.values():
            return self.__session.get(cls, id)
        return None

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session

    def ping(self) -> bool:
        """Round trip to the database; False when it cannot be reached"""
        try:
            self.__session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception("Database ping failed")
            self.__session.rollback()
            return False
