from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer

from classgroups.config import Base


class RosterSnapshot(Base):
    __tablename__ = "roster_snapshots"
    id = Column(Integer, primary_key=True)  # single row, id=1
    version = Column(Integer, nullable=False, default=1)
    state = Column(JSON, nullable=True)  # RosterState.dump()
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
