"""Database configuration and initialization."""
from sqlalchemy import create_engine, event, BigInteger, Integer
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# BIGINT on PostgreSQL, INTEGER on SQLite so the key aliases ROWID and autoincrements
BigIntegerPK = BigInteger().with_variant(Integer, "sqlite")

# Global session and engine
engine = None
db_session = None


def _engine_options(app):
    """Build create_engine kwargs for the configured backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    if database_uri.startswith('sqlite'):
        options['connect_args'] = {'check_same_thread': False, 'timeout': 30}
    else:
        options['pool_size'] = 10
        options['max_overflow'] = 20
    return options


def _serialize_sqlite_writers(sqlite_engine):
    """
    Make SQLite transactions take the write lock up front.

    pysqlite defers BEGIN until the first write and ignores FOR UPDATE, so two
    concurrent settlements could both read before either writes. BEGIN
    IMMEDIATE gives SQLite the same writer serialization that row locks give
    PostgreSQL.
    """
    @event.listens_for(sqlite_engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, 'begin')
    def _begin_immediate(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine = create_engine(database_uri, **_engine_options(app))

    if engine.dialect.name == 'sqlite':
        _serialize_sqlite_writers(engine)

    db_session = scoped_session(
        sessionmaker(autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    if app.config.get('AUTO_CREATE_SCHEMA'):
        init_schema()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def init_schema():
    """Create all tables and seed the invoice number sequence."""
    # Import models so every table is registered on Base.metadata
    from fashionhub import models  # noqa: F401
    from fashionhub.services.sequence_service import ensure_sequence

    Base.metadata.create_all(bind=engine)

    session = db_session()
    try:
        ensure_sequence(session)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        db_session.remove()


def get_session():
    """Get database session."""
    return db_session
