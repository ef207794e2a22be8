"""Generic persistence scaffold for append-only signal repositories."""

from __future__ import annotations

from collections.abc import Callable, Collection, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import func, insert, select
from sqlalchemy.orm import Session

from domain.protocol import SignalRecordKind

ModelT = TypeVar("ModelT")
SignalT = TypeVar("SignalT")


class BaseSignalRepository(Generic[ModelT, SignalT]):
    """Append and read operations shared by the gift, battle and activity tables."""

    def __init__(
        self,
        *,
        kind: SignalRecordKind,
        model: type[ModelT],
        signal_to_row: Callable[[SignalT, int], dict[str, Any]],
        row_to_signal: Callable[[ModelT], SignalT],
        copy_sql: str | None = None,
        signal_to_copy_row: Callable[[SignalT, int], tuple[Any, ...]] | None = None,
    ) -> None:
        self.kind = kind
        self.model = model
        self.signal_to_row = signal_to_row
        self.row_to_signal = row_to_signal
        self.copy_sql = copy_sql
        self.signal_to_copy_row = signal_to_copy_row
        table_name = getattr(self.model, "__tablename__", "signals")
        self._copy_support_cache_key = f"_{table_name}_supports_copy"

    def insert_signals(self, session: Session, signals: Sequence[SignalT], *, season_id: int) -> None:
        """Bulk append records using COPY on supported Postgres drivers."""
        if not signals:
            return

        if self._supports_copy_bulk_insert(session):
            self._copy_signals(session, signals, season_id=season_id)
            return

        payload = [self.signal_to_row(signal, season_id) for signal in signals]
        session.execute(insert(self.model), payload)

    def fetch_for_creator(
        self,
        session: Session,
        *,
        season_id: int,
        creator_id: str,
        excluded_ids: Collection[int] = (),
    ) -> tuple[SignalT, ...]:
        """Return one creator's records in (occurred_at, id) order, minus excluded ids."""
        model: Any = self.model
        statement = (
            select(self.model)
            .where(model.season_id == season_id, model.creator_id == creator_id)
            .order_by(model.occurred_at, model.id)
        )
        if excluded_ids:
            statement = statement.where(model.id.not_in(list(excluded_ids)))
        rows = session.execute(statement).scalars().all()
        return tuple(self.row_to_signal(row) for row in rows)

    def count_records(self, session: Session, *, season_id: int) -> int:
        model: Any = self.model
        result = session.scalar(select(func.count(model.id)).where(model.season_id == season_id))
        return int(result or 0)

    def creator_for_record(self, session: Session, *, season_id: int, record_id: int) -> str | None:
        model: Any = self.model
        return session.scalar(
            select(model.creator_id).where(model.season_id == season_id, model.id == record_id)
        )

    def _supports_copy_bulk_insert(self, session: Session) -> bool:
        if self.copy_sql is None or self.signal_to_copy_row is None:
            return False

        cached_value = session.info.get(self._copy_support_cache_key)
        if cached_value is not None:
            return bool(cached_value)

        bind = session.get_bind()
        if bind is None or bind.dialect.name != "postgresql":
            session.info[self._copy_support_cache_key] = False
            return False

        try:
            raw_connection = session.connection().connection.driver_connection
        except Exception:
            session.info[self._copy_support_cache_key] = False
            return False

        try:
            with raw_connection.cursor() as cursor:
                supports_copy = hasattr(cursor, "copy")
        except Exception:
            supports_copy = False

        session.info[self._copy_support_cache_key] = supports_copy
        return supports_copy

    def _copy_signals(self, session: Session, signals: Sequence[SignalT], *, season_id: int) -> None:
        if self.copy_sql is None or self.signal_to_copy_row is None:
            raise RuntimeError("COPY not configured for this repository")

        raw_connection = session.connection().connection.driver_connection
        with raw_connection.cursor() as cursor:
            with cursor.copy(self.copy_sql) as copy:
                for signal in signals:
                    copy.write_row(self.signal_to_copy_row(signal, season_id))
