# backend/yoga_studio/db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from urllib.parse import urlparse, parse_qs
from .config import settings

DATABASE_URL = settings.DATABASE_URL

def _should_use_ssl(url: str) -> bool:
    if url.startswith("sqlite"):
        return False
    try:
        parsed = urlparse(url)
        q = parse_qs(parsed.query or "")
        if "sslmode" in q and any(v and v[0].lower() == "require" for v in q.values()):
            return True
        host = (parsed.hostname or "").lower()
        if "supabase.co" in host or "neon.tech" in host or "neon.aws" in host or "railway" in host:
            return True
    except ValueError:
        pass
    return False


def engine_options(url: str) -> dict:
    """Keyword arguments for create_engine() that suit the given database URL."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # one shared connection, otherwise every pooled connection gets its own empty memory db
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    if _should_use_ssl(url):
        return {"connect_args": {"sslmode": "require"}}
    # ALWAYS pass a dict (empty or with sslmode), never None
    return {"connect_args": {}}


engine = create_engine(
    DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    **engine_options(DATABASE_URL)
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True
)

Base = declarative_base()
