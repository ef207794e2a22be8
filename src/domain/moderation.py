"""Administrative moderation: exclusions, restorations and their audit trail."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from domain.errors import RecalculationConflictError
from domain.pipeline import RecalculationOrchestrator, RecalculationSummary
from domain.protocol import SignalRecordKind
from repositories.moderation import add_exclusion, deactivate_exclusions, log_moderation_action
from repositories.seasons import assert_season_writable
from repositories.signals import SIGNAL_REPOSITORIES

logger = logging.getLogger(__name__)

ACTION_EXCLUDE_CREATOR = "exclude_creator"
ACTION_EXCLUDE_RECORD = "exclude_record"
ACTION_RESTORE_CREATOR = "restore_creator"


class ModerationService:
    """Every action writes one audit row and can trigger a recalculation pass."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        orchestrator: RecalculationOrchestrator | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.orchestrator = orchestrator or RecalculationOrchestrator(session_factory)

    def exclude_creator(
        self,
        season_id: int,
        creator_id: str,
        reason: str,
        *,
        recalculate: bool = True,
    ) -> RecalculationSummary | None:
        def apply(session: Session) -> dict[str, Any]:
            exclusion = add_exclusion(session, season_id=season_id, creator_id=creator_id)
            return {"exclusion_id": exclusion.id}

        return self._act(
            season_id,
            action_type=ACTION_EXCLUDE_CREATOR,
            reason=reason,
            creator_id=creator_id,
            apply=apply,
            recalculate=recalculate,
        )

    def exclude_record(
        self,
        season_id: int,
        record_kind: SignalRecordKind,
        record_id: int,
        reason: str,
        *,
        recalculate: bool = True,
    ) -> RecalculationSummary | None:
        """Drop one gift, battle or activity record from scoring without touching the record."""
        record_kind = SignalRecordKind(record_kind)
        with self.session_factory() as session:
            creator_id = SIGNAL_REPOSITORIES[record_kind].creator_for_record(
                session, season_id=season_id, record_id=record_id
            )
        if creator_id is None:
            raise LookupError(
                f"{record_kind.value} record_id={record_id} does not exist in season_id={season_id}"
            )

        def apply(session: Session) -> dict[str, Any]:
            exclusion = add_exclusion(
                session,
                season_id=season_id,
                creator_id=creator_id,
                record_kind=record_kind,
                record_id=record_id,
            )
            return {
                "exclusion_id": exclusion.id,
                "record_kind": record_kind.value,
                "record_id": record_id,
            }

        return self._act(
            season_id,
            action_type=ACTION_EXCLUDE_RECORD,
            reason=reason,
            creator_id=creator_id,
            apply=apply,
            recalculate=recalculate,
        )

    def restore_creator(
        self,
        season_id: int,
        creator_id: str,
        reason: str,
        *,
        include_records: bool = False,
        recalculate: bool = True,
    ) -> RecalculationSummary | None:
        def apply(session: Session) -> dict[str, Any]:
            lifted = deactivate_exclusions(
                session,
                season_id=season_id,
                creator_id=creator_id,
                include_records=include_records,
            )
            return {"lifted_exclusions": lifted, "include_records": include_records}

        return self._act(
            season_id,
            action_type=ACTION_RESTORE_CREATOR,
            reason=reason,
            creator_id=creator_id,
            apply=apply,
            recalculate=recalculate,
        )

    def _act(
        self,
        season_id: int,
        *,
        action_type: str,
        reason: str,
        creator_id: str,
        apply: Callable[[Session], dict[str, Any]],
        recalculate: bool,
    ) -> RecalculationSummary | None:
        if not reason.strip():
            raise ValueError("a moderation reason is required")

        with self.session_factory() as session:
            try:
                assert_season_writable(session, season_id)
                details = apply(session)
                log_moderation_action(
                    session,
                    season_id=season_id,
                    action_type=action_type,
                    reason=reason,
                    creator_id=creator_id,
                    details=details,
                )
                session.commit()
            except Exception:
                session.rollback()
                raise

        logger.info(
            "moderation action=%s season_id=%s creator_id=%s", action_type, season_id, creator_id
        )
        if not recalculate:
            return None

        try:
            return self.orchestrator.recalculate(season_id, trigger=action_type)
        except RecalculationConflictError as exc:
            # The next scheduled pass reads the new exclusion.
            logger.warning("recalculation after %s deferred: %s", action_type, exc)
            return None


__all__ = [
    "ACTION_EXCLUDE_CREATOR",
    "ACTION_EXCLUDE_RECORD",
    "ACTION_RESTORE_CREATOR",
    "ModerationService",
]
