# storefront/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from storefront.utils.settings import (
    DATABASE_URL,
    DB_POOL_TIMEOUT_SECONDS,
    DB_STATEMENT_TIMEOUT_MS,
)


class Base(DeclarativeBase):
    pass


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """
    Tworzy engine z ograniczonym czasem oczekiwania na baze.
    postgres: statement_timeout per polaczenie, sqlite: busy timeout.
    """
    if url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,
            "timeout": DB_STATEMENT_TIMEOUT_MS / 1000,
        }
        return create_engine(url, connect_args=connect_args, **kwargs)

    connect_args = {"options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}"}
    return create_engine(
        url,
        connect_args=connect_args,
        pool_timeout=DB_POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
        **kwargs,
    )


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine | None = None) -> None:
    # import modeli zeby zarejestrowac tabele w Base.metadata
    import storefront.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
