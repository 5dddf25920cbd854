from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase

from querylinker_core.config import settings


def make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # FastAPI runs sync endpoints on a thread pool
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker[Session](bind=engine, expire_on_commit=False)

class Base(DeclarativeBase):
    pass
