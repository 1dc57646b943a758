from sqlalchemy.orm import DeclarativeBase

class MemoryDB_Base(DeclarativeBase):
    """Declarative base for every table in the memory database."""
