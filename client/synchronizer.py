"""DuelBoard client-side mirror of the shared match document."""
from __future__ import annotations
import logging
from typing import Any, Callable, Optional

from shared import match
from shared.hashing import short_digest
from shared.match import MatchDocument, default_document, repair_document
from shared.protocol import SCOREBOARD_KEY
from shared.store import RemoteStore

logger = logging.getLogger("duelboard.client.sync")

SnapshotCallback = Callable[[MatchDocument], None]


class StateSynchronizer:
    """
    Owns the local mirror of the match document.

    Only the store callback replaces the mirror. Mutations merge over the
    mirror and overwrite the whole document in the store; the change shows
    up locally once the store echoes it back. Two clients writing from the
    same stale mirror race, and whichever write the store commits last wins
    in full. That is the consistency model, not an error.
    """

    def __init__(self, store: RemoteStore, key: str = SCOREBOARD_KEY,
                 defaults: Optional[MatchDocument] = None):
        self.store = store
        self.key = key
        self.defaults = defaults or default_document()
        self._mirror: Optional[MatchDocument] = None
        self._subscribers: dict[int, SnapshotCallback] = {}
        self._next_token = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._started = False

    @property
    def snapshot(self) -> Optional[MatchDocument]:
        return self._mirror

    def start(self) -> None:
        """Register with the store. The store delivers the current value right away."""
        if self._started:
            return
        self._started = True
        logger.info("Subscribing to %s", self.key)
        self._unsubscribe = self.store.listen(self.key, self._on_value)

    def stop(self) -> None:
        self._started = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("Unsubscribed from %s", self.key)

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Receive every repaired snapshot; the current one is delivered immediately."""
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        if self._mirror is not None:
            callback(self._mirror)

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def _on_value(self, raw: Optional[dict]) -> None:
        if not self._started:
            return
        if raw is not None and not isinstance(raw, dict):
            logger.warning("Ignoring non-document value under %s: %r", self.key, type(raw).__name__)
            raw = None
        if raw is None:
            doc = self.defaults
            logger.info("Key %s is empty, writing default document", self.key)
            self._publish(doc)
            self.store.set(self.key, doc.to_dict())
            return
        doc = MatchDocument.from_dict(repair_document(raw))
        logger.debug("Snapshot %s", short_digest(raw))
        self._publish(doc)

    def _publish(self, doc: MatchDocument) -> None:
        self._mirror = doc
        for token, callback in list(self._subscribers.items()):
            if token not in self._subscribers:
                continue
            try:
                callback(doc)
            except Exception as e:
                logger.error("Snapshot subscriber error: %s", e)

    # ---- Mutations ----

    def mutate(self, **fields: Any) -> Optional[MatchDocument]:
        """
        Merge top-level fields over the mirror and overwrite the stored document.

        Without a snapshot there is nothing to merge over: the stored document
        may hold a live match this client has not received yet, so the write
        is dropped and None is returned.
        """
        if self._mirror is None:
            logger.warning("No snapshot of %s yet; dropping write of %s", self.key, sorted(fields))
            return None
        merged = self._mirror.merged(**fields)
        document = merged.to_dict()
        logger.debug("Write %s fields=%s", short_digest(document), sorted(fields))
        self.store.set(self.key, document)
        return merged

    def _shape(self, helper: Callable[..., dict[str, Any]], *args: Any) -> Optional[MatchDocument]:
        if self._mirror is None:
            logger.warning("No snapshot of %s yet; dropping %s", self.key, helper.__name__)
            return None
        return self.mutate(**helper(self._mirror, *args))

    def set_player_name(self, team: str, index: int, name: str) -> Optional[MatchDocument]:
        return self._shape(match.set_player_name, team, index, name)

    def increment_score(self, team: str, index: int) -> Optional[MatchDocument]:
        return self._shape(match.increment_score, team, index)

    def decrement_score(self, team: str, index: int) -> Optional[MatchDocument]:
        return self._shape(match.decrement_score, team, index)

    def zero_score(self, team: str, index: int) -> Optional[MatchDocument]:
        return self._shape(match.zero_score, team, index)

    def reset_scores(self) -> Optional[MatchDocument]:
        return self._shape(match.reset_scores)

    def set_roster_size(self, size: int) -> Optional[MatchDocument]:
        return self._shape(match.set_roster_size, size)

    def set_points_to_win(self, points: int) -> Optional[MatchDocument]:
        return self._shape(match.set_points_to_win, points)

    def team_total(self, team: str) -> int:
        if self._mirror is None:
            return 0
        return self._mirror.team_total(team)
