"""
Database engine, session factory and the declarative base.

Engines are built per application by ``create_app`` and kept on
``app.state``; nothing here connects at import time.
"""
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared with the threadpool."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    # autocommit=False: changes require an explicit commit
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """
    Dependency providing a database session per request.

    The session comes from the serving application's own factory and is
    closed after the response is sent, even if the handler raised.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
