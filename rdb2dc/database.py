import logging
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
logger = logging.getLogger('rdb2dc')


class DatabaseError(Exception):
    pass


class Database:
    """Read-only access to the publications database. Query failures are
    logged and read as an empty result so a batch can carry on past them.
    Best used as a context manager."""

    def __init__(self, url, username=None, password=None):
        self.raw_url = url
        self.username = username
        self.password = password
        self.url = None
        self.engine = None
        self.conn = None

    def build_url(self):
        """The connection URL with any separately configured credentials
        merged in."""
        url = make_url(self.raw_url)
        if self.username is not None:
            url = url.set(username=self.username)
        if self.password is not None:
            url = url.set(password=self.password)
        return url

    def connect(self):
        """Opens the connection. An unparseable URL, a missing DBAPI driver
        or an unreachable server all raise DatabaseError."""
        self.url = None
        try:
            self.url = self.build_url()
            self.engine = create_engine(self.url, future=True)
            self.conn = self.engine.connect()
        except (SQLAlchemyError, ImportError) as e:
            if self.url is None:
                logger.error(f'Invalid database URL: {e}')
            else:
                logger.error(
                    f'Unable to connect to {self.url.render_as_string(hide_password=True)}: {e}')
            self.disconnect()
            raise DatabaseError(str(e)) from e
        logger.debug(f'Connected to {self.url.render_as_string(hide_password=True)}')
        return self

    def disconnect(self):
        if self.conn is not None:
            self.conn.close()
            self.conn = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()
        return False

    def get_recordset(self, sql, uid=None):
        """Run a query with an optional pub_id parameter and return the rows
        as a list of dicts."""
        if self.conn is None:
            logger.error('Query attempted without a database connection')
            return []
        params = {} if uid is None else {'pub_id': uid}
        try:
            result = self.conn.execute(text(sql), params)
            return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            logger.error(f'Query failed: {e}')
            self._rollback()
            return []

    def _rollback(self):
        try:
            self.conn.rollback()
        except SQLAlchemyError as e:
            logger.error(f'Rollback failed: {e}')
