from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from lawdesk.core.config import settings
from lawdesk.db.base import Base

connect_args = {}
backend = make_url(settings.DATABASE_URL).get_backend_name()
if backend.startswith("postgresql"):
    connect_args["options"] = "-c timezone=utc"
elif backend == "sqlite":
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create all tables (and the slot uniqueness index) if missing."""
    import lawdesk.db.models  # noqa: F401  registers mappers

    Base.metadata.create_all(bind=bind or engine)
