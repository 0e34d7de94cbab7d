"""QThread worker running GeoTIFF trait evaluation in the background."""

from __future__ import annotations

from dataclasses import dataclass
import traceback

import numpy as np
from loguru import logger
from PySide6.QtCore import QObject, Signal, Slot

from plant_traits.config import DEFAULT_TILE_SIZE
from plant_traits.core.errors import EvaluationCancelled
from plant_traits.core.model_store import TraitModelStore
from plant_traits.processing.geotiff import evaluate_geotiff
from plant_traits.processing.batch import TraitRequest


@dataclass
class TraitInferenceInput:
    """Input payload for the trait inference worker."""

    src_path: str
    dst_path: str
    trait_id: str
    tile_size: int = DEFAULT_TILE_SIZE
    reflectance_scale: float | None = None
    clamp: bool = True
    boundary_xy: np.ndarray | None = None


class TraitInferenceWorker(QObject):
    """Background worker evaluating one trait raster tile by tile."""

    sigProgress = Signal(int)
    sigFinished = Signal(str)
    sigFailed = Signal(str)
    sigCancelled = Signal()

    def __init__(self, payload: TraitInferenceInput, store: TraitModelStore) -> None:
        super().__init__()
        self.payload = payload
        self._store = store
        self._cancelled = False

    def request_cancel(self) -> None:
        """Request cancellation at the next tile boundary."""
        self._cancelled = True

    def _is_cancelled(self) -> bool:
        return self._cancelled

    def _emit_progress(self, done: int, total: int) -> None:
        self.sigProgress.emit(int((done / max(1, total)) * 100))

    @Slot()
    def run(self) -> None:
        """Execute evaluation and emit progress/results."""
        if self._cancelled:
            self.sigCancelled.emit()
            return
        self.sigProgress.emit(0)
        try:
            request = TraitRequest(
                trait_id=self.payload.trait_id,
                tile_size=self.payload.tile_size,
                clamp=self.payload.clamp,
                boundary_xy=self.payload.boundary_xy,
            )
            out_path = evaluate_geotiff(
                self.payload.src_path,
                self.payload.dst_path,
                request,
                self._store,
                reflectance_scale=self.payload.reflectance_scale,
                progress=self._emit_progress,
                should_cancel=self._is_cancelled,
            )
        except EvaluationCancelled:
            logger.info("Trait evaluation cancelled")
            self.sigCancelled.emit()
            return
        except Exception as exc:
            message = format_worker_exception(exc)
            logger.error(message)
            self.sigFailed.emit(message)
            return
        self.sigProgress.emit(100)
        self.sigFinished.emit(str(out_path))


def format_worker_exception(exc: Exception) -> str:
    """Format exception into message with traceback details.

    Parameters
    ----------
    exc : Exception
        The exception to format.

    Returns
    -------
    str
        Formatted message with traceback text.
    """
    trace_text = traceback.format_exc()
    if not trace_text or trace_text == "NoneType: None\n":
        trace_text = "\n".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return f"{type(exc).__name__}: {exc}\n{trace_text.strip()}"
