from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from delivery_orders.core.config import settings

# No connection is opened here; the first one happens in the startup retry loop
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
