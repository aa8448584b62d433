from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel
from songrank.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # The sync engine is shared by FastAPI's threadpool workers
    connect_args["check_same_thread"] = False

engine = create_engine(
    str(settings.DATABASE_URL),
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args=connect_args,
)

# Sessionmaker for request transactions
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=Session
)

# FastAPI dependency
def get_db():
    """Yields a DB session; commits on success, rolls back on error."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

# Table bootstrap (dev/tests only)
def create_db_and_tables(bind=None):
    """Creates every table. Use Alembic in production."""
    SQLModel.metadata.create_all(bind or engine)
