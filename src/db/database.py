# src/db/database.py
from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import sessionmaker, declarative_base

from src.config.settings import settings


def build_database_url():
    if settings.database_url:
        return settings.database_url

    # MySQL (PyMySQL driver)
    return URL.create(
        "mysql+pymysql",
        username=settings.db_user,
        password=settings.db_pass,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
    )


url = build_database_url()

if str(url).startswith("sqlite"):
    # SQLite takes no pool options (local runs and tests)
    engine = create_engine(url, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        url,
        pool_pre_ping=True,     # detect dropped connections
        pool_recycle=1800,      # recycle every 30 minutes
        pool_size=5,
        max_overflow=10,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# one session per request
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
