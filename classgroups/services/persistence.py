"""
Durable roster snapshot.

The whole roster is written as one JSON row after every committed mutation.
This is best-effort: errors surface as PersistenceError and the service logs
them and keeps serving from memory.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from classgroups.models.models import RosterSnapshot
from classgroups.schemas.roster_schemas import RosterState
from classgroups.services.errors import PersistenceError
from classgroups.utils.logger import configure_logging, log_timing

logger = configure_logging()

SNAPSHOT_ID = 1


class RosterRepository:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load(self) -> Optional[Any]:
        """Return the stored record as decoded JSON, or None if nothing was saved yet."""
        try:
            with self.session_factory() as db:
                row = db.get(RosterSnapshot, SNAPSHOT_ID)
                if row is None:
                    return None
                state = row.state
        except SQLAlchemyError as e:
            raise PersistenceError(f"could not read roster snapshot: {e}") from e
        if isinstance(state, str):
            # Column may hold raw text if written by hand or by another driver.
            try:
                state = json.loads(state)
            except ValueError:
                logger.warning("stored roster snapshot is not valid JSON")
                return {}
        return state

    def save(self, state: RosterState) -> None:
        try:
            with log_timing(logger, "persist roster"), self.session_factory() as db:
                row = db.get(RosterSnapshot, SNAPSHOT_ID)
                if row is None:
                    row = RosterSnapshot(id=SNAPSHOT_ID)
                    db.add(row)
                row.version = state.version
                row.state = state.dump()
                row.updated_at = datetime.utcnow()
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"could not write roster snapshot: {e}") from e


def read_legacy_state_file(path: str | Path) -> Optional[Any]:
    """
    Read a plain state.json file from a file-based deployment
    ({students, groups, devices, lastJoin}). Missing or undecodable -> None.
    """
    p = Path(path)
    if not p.is_file():
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("legacy state file unreadable path=%s", p)
        return None
