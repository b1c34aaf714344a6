"""
Roster service: the single-writer boundary.

join/leave/reset run one at a time under one lock: the engine computes over a
working copy, the store commits it, the repository flushes it, and only then
is the new public view broadcast, still under the lock so subscribers see
views in commit order. publish() only enqueues, so holding the lock is cheap.
Readers never take the lock.
"""

from __future__ import annotations

import threading
from typing import Optional

from classgroups.events.notifier import ChangeNotifier, Subscription
from classgroups.schemas.roster_schemas import PublicView
from classgroups.services.assignment_engine import AssignmentEngine, JoinOutcome, LeaveOutcome
from classgroups.services.errors import CapacityError, PersistenceError, RosterError
from classgroups.services.persistence import RosterRepository, read_legacy_state_file
from classgroups.services.roster_store import InvalidRosterRecord, RosterStore
from classgroups.utils.logger import configure_logging

logger = configure_logging()


class RosterService:
    def __init__(
        self,
        store: RosterStore,
        engine: AssignmentEngine,
        repository: RosterRepository,
        notifier: ChangeNotifier,
    ):
        self.store = store
        self.engine = engine
        self.repository = repository
        self.notifier = notifier
        self._lock = threading.Lock()

    def load(self, legacy_state_file: Optional[str] = None) -> PublicView:
        """
        Restore the roster at startup. Any unusable record falls back to an
        empty roster; the result is persisted so the next start loads the same thing.
        """
        with self._lock:
            try:
                raw = self.repository.load()
            except PersistenceError:
                logger.exception("roster load failed, starting empty")
                raw = None
            if raw is None and legacy_state_file:
                raw = read_legacy_state_file(legacy_state_file)
                if raw is not None:
                    logger.info("importing legacy state file path=%s", legacy_state_file)

            if raw is None:
                self.store.reset()
            else:
                try:
                    self.store.load(raw)
                except InvalidRosterRecord as e:
                    logger.warning("stored roster invalid (%s), starting empty", e)
                    self.store.reset()
            self._persist()
            view = self.store.snapshot()
        logger.info("roster loaded joined=%s total=%s", view.counts.joined, view.total)
        return view

    def snapshot(self) -> PublicView:
        return self.store.snapshot()

    def subscribe(self) -> Subscription:
        return self.notifier.subscribe(self.store.snapshot)

    def unsubscribe(self, sub: Subscription) -> None:
        self.notifier.unsubscribe(sub)

    def join(self, name: object, group_id: Optional[int] = None, device_id: object = None) -> JoinOutcome:
        with self._lock:
            roster = self.store.begin()
            try:
                outcome = self.engine.join(roster, name, group_id, device_id)
            except CapacityError as e:
                logger.warning("join rejected error=%s scope=%s group=%s name=%r", e.code, e.scope, e.group_id, name)
                raise
            except RosterError as e:
                logger.warning("join rejected error=%s name=%r group=%s", e.code, name, group_id)
                raise
            if outcome.changed:
                self.store.commit(roster)
                self._persist()
                self.notifier.publish(self.store.snapshot())
        logger.info("join status=%s name=%r group=%s", outcome.status, outcome.name, outcome.group_id)
        return outcome

    def leave(self, name: object, device_id: object = None) -> LeaveOutcome:
        with self._lock:
            roster = self.store.begin()
            try:
                outcome = self.engine.leave(roster, name, device_id)
            except RosterError as e:
                logger.warning("leave rejected error=%s name=%r", e.code, name)
                raise
            self.store.commit(roster)
            self._persist()
            self.notifier.publish(self.store.snapshot())
        logger.info("leave name=%r group=%s", outcome.name, outcome.group_id)
        return outcome

    def reset(self, token: object) -> PublicView:
        with self._lock:
            roster = self.store.begin()
            try:
                self.engine.reset(roster, token, self.store.capacities)
            except RosterError as e:
                logger.warning("reset rejected error=%s", e.code)
                raise
            self.store.commit(roster)
            self._persist()
            view = self.store.snapshot()
            self.notifier.publish(view)
        logger.info("roster reset total=%s", view.total)
        return view

    def _persist(self) -> None:
        try:
            self.repository.save(self.store.state)
        except PersistenceError:
            # Memory stays authoritative; the next successful write catches up.
            logger.exception("roster persistence failed")
