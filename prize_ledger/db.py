import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# Load .env file with explicit UTF-8 encoding
load_dotenv(encoding='utf-8')

DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./prize_ledger.db"


def build_engine(url: str):
    connect_args = {}
    if url.startswith("postgres"):
        connect_args = {"options": "-c timezone=utc"}
    elif url.startswith("sqlite"):
        # request handlers run in a threadpool; writers wait on the file lock
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(url, connect_args=connect_args)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
