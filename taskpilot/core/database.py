from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def make_engine(database_url: str):
    """Engine SQLAlchemy (SQLite a besoin de check_same_thread=False pour l'outbox)"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, echo=False, connect_args=connect_args)


def init_db(engine):
    # Import des modèles pour remplir Base.metadata
    import taskpilot.models.task  # noqa: F401
    import taskpilot.models.selection  # noqa: F401

    Base.metadata.create_all(bind=engine)
