"""
Unit test fixtures. Pure engine/store objects; persistence uses in-memory SQLite.
"""
import pytest

from classgroups.services.roster_store import RosterStore


@pytest.fixture
def small_store():
    """Single group of two seats."""
    return RosterStore([2])
