"""
Pytest configuration and shared fixtures for the test suite.
Ensures the project root is importable and provides roster building blocks
backed by an in-memory SQLite database.
"""
import sys
from itertools import count
from pathlib import Path

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from classgroups.config import create_db, create_db_engine, create_session_factory  # noqa: E402
from classgroups.events.notifier import ChangeNotifier  # noqa: E402
from classgroups.services.assignment_engine import AssignmentEngine  # noqa: E402
from classgroups.services.persistence import RosterRepository  # noqa: E402
from classgroups.services.roster_service import RosterService  # noqa: E402
from classgroups.services.roster_store import RosterStore  # noqa: E402

CAPACITIES = [7, 7, 6, 6, 6, 6, 6]


@pytest.fixture
def capacities():
    return list(CAPACITIES)


@pytest.fixture
def clock():
    """Deterministic millisecond clock: 1000, 1001, ..."""
    ticks = count(1000)
    return lambda: next(ticks)


@pytest.fixture
def engine(clock):
    return AssignmentEngine(reset_token="teacher", clock=clock)


@pytest.fixture
def store(capacities):
    return RosterStore(capacities)


# ----- In-memory DB (for tests that need persistence without touching a file) -----
@pytest.fixture
def in_memory_engine():
    db_engine = create_db_engine("sqlite://")
    create_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def repository(in_memory_engine):
    return RosterRepository(create_session_factory(in_memory_engine))


@pytest.fixture
def notifier():
    return ChangeNotifier(queue_size=4)


@pytest.fixture
def service(store, engine, repository, notifier):
    svc = RosterService(store=store, engine=engine, repository=repository, notifier=notifier)
    svc.load()
    return svc
