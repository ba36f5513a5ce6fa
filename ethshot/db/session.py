from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ethshot.db.base import Base


def create_db_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        # worker threads of the RPC transport share the connection
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(database_url,
                         connect_args={"connect_timeout": 30},
                         pool_pre_ping=True,
                         pool_recycle=3600,
    )


def create_session_factory(engine: Engine, create_tables: bool = True) -> sessionmaker:
    if create_tables:
        # make sure the model modules are registered on Base.metadata
        import ethshot.models.auth  # noqa: F401
        import ethshot.models.profiles  # noqa: F401

        Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
