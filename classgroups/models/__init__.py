"""
DB entities. The roster is stored as one JSON snapshot row.
"""

from classgroups.models.models import RosterSnapshot

__all__ = ["RosterSnapshot"]
