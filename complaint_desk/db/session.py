from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from complaint_desk.core.config import settings


def build_engine(database_url: str, **kwargs):
    """Create an engine with per-backend connection arguments."""
    connect_args = {}
    backend = make_url(database_url).get_backend_name()
    if backend.startswith("postgresql"):
        connect_args["options"] = "-c timezone=utc"
    elif backend == "sqlite":
        # Sync routes run in a threadpool; writers wait on the file lock.
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 30
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args, **kwargs)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
