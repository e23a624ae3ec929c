"""Undo a match's rating effects and replay everything that depended on it."""

from __future__ import annotations

import heapq
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from domain.ratings.common import Entity, PairIdentity, RatingType, entity_key
from domain.ratings.errors import RatingError, TransientStoreError
from domain.ratings.processor import MatchProcessor
from domain.ratings.protocol import MatchStore, UnitOfWorkFactory

logger = logging.getLogger(__name__)

EDIT_RECALCULATION_TYPES = (RatingType.GLOBAL, RatingType.V1, RatingType.V2)


@dataclass(frozen=True)
class RevertResult:
    match_id: int
    reverted: int
    failed: int
    players: frozenset[int] = frozenset()
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.failed == 0


@dataclass(frozen=True)
class ReplayResult:
    match_id: int
    participants: tuple[int, ...] = ()
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RecalculationSummary:
    """Outcome of one replay run; failed steps are listed, not raised."""

    after_match_id: int
    rating_type: RatingType | None = None
    results: list[ReplayResult] = field(default_factory=list)
    affected_players: set[int] = field(default_factory=set)

    @property
    def recalculated(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.ok)

    @property
    def replayed_match_ids(self) -> list[int]:
        return [result.match_id for result in self.results]


@dataclass
class MatchCorrectionSummary:
    """Result of an edit or delete workflow."""

    match_id: int
    revert: RevertResult
    reprocess_error: Exception | None = None
    recalculations: dict[RatingType, RecalculationSummary] = field(default_factory=dict)

    @property
    def recalculated(self) -> int:
        return sum(summary.recalculated for summary in self.recalculations.values())

    @property
    def failed(self) -> int:
        failed = sum(summary.failed for summary in self.recalculations.values())
        return failed + (1 if self.reprocess_error is not None else 0)


def _players_of(entities: Iterable[Entity]) -> set[int]:
    players: set[int] = set()
    for entity in entities:
        if isinstance(entity, PairIdentity):
            players.update(entity.players)
        else:
            players.add(int(entity))
    return players


class RecalculationCoordinator:
    """Sequential revert/replay over the match store in ascending match id order."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        match_store: MatchStore,
        processor: MatchProcessor,
    ) -> None:
        self.uow_factory = uow_factory
        self.match_store = match_store
        self.processor = processor

    def revert(self, match_id: int) -> RevertResult:
        """Restore every touched record to its pre-match rating and drop the match's entries.

        Each entry is undone in its own unit of work; a failing entry is logged
        and counted while the rest proceed. A match with no entries reverts
        trivially. If the entries cannot be read at all the result carries
        ``failed=1`` and the error.
        """
        try:
            with self.uow_factory() as uow:
                entries = uow.ledger.entries_for_match(match_id)
        except RatingError as exc:
            logger.error("Could not read history entries of match_id=%s: %s", match_id, exc)
            return RevertResult(match_id=match_id, reverted=0, failed=1, error=exc)

        reverted = 0
        failed = 0
        last_error: Exception | None = None
        players: set[int] = set()
        for entry in entries:
            try:
                with self.uow_factory() as uow:
                    uow.ratings.get(entry.entity, entry.rating_type, for_update=True)
                    uow.ratings.upsert(
                        entry.entity,
                        entry.rating_type,
                        entry.rating_before,
                        datetime.now(UTC).replace(tzinfo=None),
                    )
                    uow.ledger.delete(entry.id)
            except RatingError as exc:
                failed += 1
                last_error = exc
                logger.warning(
                    "Failed to revert history entry id=%s (%s, %s) of match_id=%s: %s",
                    entry.id,
                    entity_key(entry.entity),
                    entry.rating_type.value,
                    match_id,
                    exc,
                )
                continue
            reverted += 1
            players.update(_players_of([entry.entity]))

        if entries:
            logger.info("Reverted match_id=%s: reverted=%s failed=%s", match_id, reverted, failed)
        return RevertResult(
            match_id=match_id,
            reverted=reverted,
            failed=failed,
            players=frozenset(players),
            error=last_error,
        )

    def recalculate_subsequent(
        self,
        entity_ids: Iterable[Entity],
        rating_type: RatingType | str,
        after_match_id: int,
        *,
        skip: set[int] | None = None,
    ) -> RecalculationSummary:
        """Replay every later match of the affected players, oldest first.

        Players of a replayed match join the affected set, so their own later
        matches are replayed as well. Each replay recomputes every rating type
        of the match, which is why candidates are not filtered by
        ``rating_type``. Match ids in ``skip`` are not replayed; replayed ids
        are added to it.
        """
        rating_type = RatingType.parse(rating_type)
        affected = _players_of(entity_ids)
        summary = RecalculationSummary(after_match_id=after_match_id, rating_type=rating_type)
        seen = set(skip or ())

        queue: list[int] = []
        for match_id in self.match_store.match_ids_after(after_match_id, affected):
            if match_id not in seen:
                seen.add(match_id)
                heapq.heappush(queue, match_id)

        logger.info(
            "Recalculating %s ratings after match_id=%s: %s candidate matches for %s players",
            rating_type.value,
            after_match_id,
            len(queue),
            len(affected),
        )

        while queue:
            match_id = heapq.heappop(queue)
            result = self._replay(match_id)
            summary.results.append(result)
            if skip is not None:
                skip.add(match_id)

            newly_touched = set(result.participants) - affected
            if not newly_touched:
                continue
            affected.update(newly_touched)
            for later_id in self.match_store.match_ids_after(match_id, newly_touched):
                if later_id not in seen:
                    seen.add(later_id)
                    heapq.heappush(queue, later_id)

        summary.affected_players = affected
        logger.info(
            "Recalculation after match_id=%s finished: recalculated=%s failed=%s",
            after_match_id,
            summary.recalculated,
            summary.failed,
        )
        return summary

    def edit_match(
        self,
        match_id: int,
        players: Iterable[int],
        apply_edit: Callable[[], None] | None = None,
    ) -> MatchCorrectionSummary:
        """Revert, apply the edit, reprocess, then replay later matches per rating type."""
        affected = set(players)
        revert = self.revert(match_id)
        affected.update(revert.players)
        if apply_edit is not None:
            apply_edit()

        summary = MatchCorrectionSummary(match_id=match_id, revert=revert)
        if revert.ok:
            try:
                match = self.match_store.get_match(match_id)
                affected.update(match.players)
                self.processor.process(match)
            except RatingError as exc:
                logger.error("Reprocessing edited match_id=%s failed: %s", match_id, exc)
                summary.reprocess_error = exc
        else:
            summary.reprocess_error = TransientStoreError(
                f"match_id={match_id} was only partly reverted; not reprocessing"
            )
            logger.error("%s", summary.reprocess_error)

        self._recalculate_types(summary, affected)
        return summary

    def delete_match(
        self,
        match_id: int,
        players: Iterable[int],
        apply_delete: Callable[[], None] | None = None,
    ) -> MatchCorrectionSummary:
        """Revert the match and replay later matches without reprocessing it."""
        affected = set(players)
        revert = self.revert(match_id)
        affected.update(revert.players)
        if apply_delete is not None:
            apply_delete()

        summary = MatchCorrectionSummary(match_id=match_id, revert=revert)
        self._recalculate_types(summary, affected)
        return summary

    def rebuild_all(self) -> RecalculationSummary:
        """Clear ratings and history, then process every match from scratch."""
        with self.uow_factory() as uow:
            uow.ledger.clear()
            uow.ratings.clear()

        summary = RecalculationSummary(after_match_id=0)
        for match_id in self.match_store.all_match_ids():
            try:
                match = self.match_store.get_match(match_id)
                self.processor.process(match)
            except RatingError as exc:
                logger.warning("Rebuild could not process match_id=%s: %s", match_id, exc)
                summary.results.append(ReplayResult(match_id=match_id, error=exc))
                continue
            summary.results.append(ReplayResult(match_id=match_id, participants=match.players))
            summary.affected_players.update(match.players)

        logger.info("Rebuilt ratings: processed=%s failed=%s", summary.recalculated, summary.failed)
        return summary

    def _recalculate_types(self, summary: MatchCorrectionSummary, players: set[int]) -> None:
        replayed: set[int] = set()
        for rating_type in EDIT_RECALCULATION_TYPES:
            summary.recalculations[rating_type] = self.recalculate_subsequent(
                players,
                rating_type,
                summary.match_id,
                skip=replayed,
            )

    def _replay(self, match_id: int) -> ReplayResult:
        participants: tuple[int, ...] = ()
        try:
            match = self.match_store.get_match(match_id)
            participants = match.players
            revert = self.revert(match_id)
            if not revert.ok:
                raise TransientStoreError(
                    f"match_id={match_id} was only partly reverted ({revert.failed} failed); not replaying"
                )
            self.processor.process(match)
        except RatingError as exc:
            logger.warning("Replay of match_id=%s failed: %s", match_id, exc)
            return ReplayResult(match_id=match_id, participants=participants, error=exc)
        return ReplayResult(match_id=match_id, participants=participants)


__all__ = [
    "EDIT_RECALCULATION_TYPES",
    "MatchCorrectionSummary",
    "RecalculationCoordinator",
    "RecalculationSummary",
    "ReplayResult",
    "RevertResult",
]
