"""Database-backed prediction statistics store.

Counters live in the procedure_add_counts and procedure_co_occurrences
tables; increments are applied row by row inside a single transaction so
concurrent recorders do not overwrite each other's snapshots.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from app.models import PredictionSeedRun, ProcedureAddCount, ProcedureCoOccurrence
from app.schemas.prediction import PREDICTION_DATA_VERSION, PredictionData, SeededFrom
from app.services.prediction_store import PredictionStoreInterface

logger = logging.getLogger(__name__)


class DatabasePredictionStore(PredictionStoreInterface):
    """Prediction store persisted through SQLAlchemy.

    Usage:
        store = DatabasePredictionStore(get_session_factory())
        data = store.load()
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load(self) -> PredictionData:
        """Load all counters and the seed provenance."""
        with self._session_factory() as session:
            add_counts = {
                row.control_name: row.count
                for row in session.execute(select(ProcedureAddCount)).scalars()
            }

            co_occurrences: dict[str, dict[str, int]] = {}
            for row in session.execute(select(ProcedureCoOccurrence)).scalars():
                co_occurrences.setdefault(row.anchor, {})[row.companion] = row.count

            seed_run = session.execute(select(PredictionSeedRun).limit(1)).scalar_one_or_none()

        seeded_from = None
        if seed_run is not None:
            seeded_from = SeededFrom(
                facility_types=seed_run.facility_types,
                method=seed_run.method,
                seeded_at=seed_run.seeded_at,
            )

        return PredictionData(
            version=PREDICTION_DATA_VERSION,
            procedure_add_counts=add_counts,
            co_occurrences=co_occurrences,
            seeded_from=seeded_from,
        )

    def save(self, data: PredictionData) -> None:
        """Replace all stored counters with the given snapshot."""
        with self._session_factory() as session, session.begin():
            session.execute(delete(ProcedureCoOccurrence))
            session.execute(delete(ProcedureAddCount))
            session.execute(delete(PredictionSeedRun))
            self._apply_counts(session, data)
            if data.seeded_from is not None:
                session.add(self._seed_run(data.seeded_from))

        logger.info(f"Saved prediction data: {len(data.procedure_add_counts)} procedures")

    def record_procedure_added(
        self,
        control_name: str,
        session_control_names: Iterable[str],
    ) -> PredictionData:
        """Increment counters for a single procedure addition."""
        with self._session_factory() as session, session.begin():
            self._increment_add_count(session, control_name, 1)
            for anchor in dict.fromkeys(session_control_names):
                if anchor == control_name:
                    continue
                self._increment_co_occurrence(session, anchor, control_name, 1)

        return self.load()

    def merge(self, incoming: PredictionData) -> PredictionData:
        """Add incoming counts to the stored counters."""
        with self._session_factory() as session, session.begin():
            self._apply_counts(session, incoming)
            if incoming.seeded_from is not None:
                session.execute(delete(PredictionSeedRun))
                session.add(self._seed_run(incoming.seeded_from))

        return self.load()

    def _apply_counts(self, session: Session, data: PredictionData) -> None:
        for control_name, count in data.procedure_add_counts.items():
            self._increment_add_count(session, control_name, count)
        for anchor, companions in data.co_occurrences.items():
            for companion, count in companions.items():
                self._increment_co_occurrence(session, anchor, companion, count)

    def _increment_add_count(self, session: Session, control_name: str, delta: int) -> None:
        row = session.execute(
            select(ProcedureAddCount).where(ProcedureAddCount.control_name == control_name)
        ).scalar_one_or_none()
        if row is None:
            session.add(ProcedureAddCount(control_name=control_name, count=delta))
            session.flush()
        else:
            row.count += delta

    def _increment_co_occurrence(
        self, session: Session, anchor: str, companion: str, delta: int
    ) -> None:
        row = session.execute(
            select(ProcedureCoOccurrence).where(
                ProcedureCoOccurrence.anchor == anchor,
                ProcedureCoOccurrence.companion == companion,
            )
        ).scalar_one_or_none()
        if row is None:
            session.add(ProcedureCoOccurrence(anchor=anchor, companion=companion, count=delta))
            session.flush()
        else:
            row.count += delta

    @staticmethod
    def _seed_run(seeded_from: SeededFrom) -> PredictionSeedRun:
        return PredictionSeedRun(
            facility_types=[ft.value for ft in seeded_from.facility_types],
            method=seeded_from.method,
            seeded_at=seeded_from.seeded_at,
        )
