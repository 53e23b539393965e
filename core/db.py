"""
Database configuration
"""
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
from core.config import get_settings

# Create engine lazily to allow test configuration to be applied
_engine = None


def engine_options(uri: str, timeout: float) -> dict:
    """
    Keyword arguments for create_engine.
    Connecting, waiting for a pooled connection and running a statement
    are all bounded by timeout seconds.
    """
    if uri.startswith("sqlite"):
        options = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": timeout,
            },
        }
        # A single shared connection keeps in-memory databases alive
        if ":memory:" in uri or uri == "sqlite://":
            options["poolclass"] = StaticPool
        return options

    options = {
        "pool_pre_ping": True,
        "pool_timeout": timeout,
    }
    # Drivers only take whole seconds
    seconds = max(1, int(timeout))
    if uri.startswith("postgresql"):
        options["connect_args"] = {
            "connect_timeout": seconds,
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    elif uri.startswith("mysql"):
        options["connect_args"] = {
            "connect_timeout": seconds,
            "read_timeout": seconds,
            "write_timeout": seconds,
        }
    return options


def get_engine():
    """
    Get or create the database engine.
    This lazy initialization allows test settings to be applied properly.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        uri = str(settings.SQLALCHEMY_DATABASE_URI)
        _engine = create_engine(
            uri, echo=False, **engine_options(uri, settings.STORE_TIMEOUT_SECONDS)
        )
    return _engine


def reset_engine():
    """
    Reset the engine to None.
    This is useful for tests that need to switch between different settings.
    """
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def create_db_and_tables():
    """Create all tables registered on the SQLModel metadata"""
    # Register table models
    import api.files.models  # noqa: F401 pylint: disable=import-outside-toplevel,unused-import
    SQLModel.metadata.create_all(get_engine())


# Yield session
def get_session():
    with Session(get_engine()) as session:
        yield session
