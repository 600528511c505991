"""Prediction statistics store interface and JSON file backend.

The store owns persistence of PredictionData. Suggestion providers only
ever see the snapshot returned by load().
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from threading import RLock

from app.schemas.base import PredictionStoreBackend
from app.schemas.prediction import PredictionData
from app.services.prediction_data import (
    PredictionDataError,
    create_empty_prediction_data,
    merge_prediction_data,
    record_procedure_added,
    validate_prediction_data,
)

logger = logging.getLogger(__name__)


class PredictionStoreInterface(ABC):
    """Interface for prediction statistics stores.

    Implementations must treat a store without data as a cold start and
    return empty PredictionData from load().
    """

    @abstractmethod
    def load(self) -> PredictionData:
        """Load the current statistics snapshot."""
        pass  # pragma: no cover

    @abstractmethod
    def save(self, data: PredictionData) -> None:
        """Replace the stored statistics."""
        pass  # pragma: no cover

    def record_procedure_added(
        self,
        control_name: str,
        session_control_names: Iterable[str],
    ) -> PredictionData:
        """Record a procedure addition and return the updated statistics."""
        data = record_procedure_added(self.load(), control_name, session_control_names)
        self.save(data)
        return data

    def merge(self, incoming: PredictionData) -> PredictionData:
        """Add incoming counts to the stored statistics."""
        data = merge_prediction_data(self.load(), incoming)
        self.save(data)
        return data

    def reset(self) -> None:
        """Discard all statistics."""
        self.save(create_empty_prediction_data())


class JSONFilePredictionStore(PredictionStoreInterface):
    """Stores prediction data as a single JSON document.

    The document uses the camelCase layout exported by the browser UI, so
    exported statistics can be dropped in place.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PredictionData:
        """Load statistics from the JSON file.

        Raises:
            PredictionDataError: If the file exists but is not valid
                prediction data.
        """
        with self._lock:
            if not self._path.exists():
                logger.debug(f"No prediction data at {self._path}, starting cold")
                return create_empty_prediction_data()

            try:
                with open(self._path, encoding="utf-8") as f:
                    raw = json.load(f)
            except json.JSONDecodeError as e:
                raise PredictionDataError(f"Prediction data at {self._path} is not valid JSON: {e}") from e

            return validate_prediction_data(raw)

    def save(self, data: PredictionData) -> None:
        """Write statistics atomically (temp file + replace)."""
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data.model_dump_json(by_alias=True, indent=2))
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def record_procedure_added(
        self,
        control_name: str,
        session_control_names: Iterable[str],
    ) -> PredictionData:
        with self._lock:
            return super().record_procedure_added(control_name, session_control_names)

    def merge(self, incoming: PredictionData) -> PredictionData:
        with self._lock:
            return super().merge(incoming)


def create_prediction_store(
    backend: PredictionStoreBackend | str,
    prediction_data_path: str | Path | None = None,
) -> PredictionStoreInterface:
    """Create the prediction store for a configured backend.

    Args:
        backend: "json" or "database".
        prediction_data_path: File path for the JSON backend.

    Raises:
        ValueError: If the backend is unknown or the JSON path is missing.
    """
    backend = PredictionStoreBackend(backend)

    if backend == PredictionStoreBackend.DATABASE:
        from app.core.database import get_session_factory
        from app.services.prediction_store_db import DatabasePredictionStore

        return DatabasePredictionStore(get_session_factory())

    if not prediction_data_path:
        raise ValueError("prediction_data_path is required for the JSON prediction store")
    return JSONFilePredictionStore(prediction_data_path)
