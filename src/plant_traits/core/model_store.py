"""Read-only registry of fitted trait models."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator

from loguru import logger

from plant_traits.config import resolve_model_dir
from plant_traits.core.errors import BandMismatchError, UnknownTraitError
from plant_traits.core.trait_model import TraitModel
from plant_traits.core.traits import TraitId


class TraitModelStore:
    """Trait models keyed by ``TraitId``.

    The store is filled once at construction and never mutated afterwards,
    so one instance can be shared by any number of worker threads.
    """

    def __init__(self, models: Iterable[TraitModel]) -> None:
        registry: dict[TraitId, TraitModel] = {}
        for model in models:
            if model.trait_id in registry:
                raise ValueError(f"Duplicate model for trait {model.trait_id.value}")
            registry[model.trait_id] = model
        self._models = MappingProxyType(registry)

    @classmethod
    def from_directory(cls, model_dir: str | Path | None = None) -> TraitModelStore:
        """Load every ``*.json`` model bundle from a directory.

        Parameters
        ----------
        model_dir : str | Path | None, optional
            Directory of model files. Defaults to ``$PLANT_TRAITS_MODEL_DIR``.

        Returns
        -------
        TraitModelStore
            Store holding one model per file.
        """
        directory = resolve_model_dir(model_dir)
        models: list[TraitModel] = []
        for file_path in sorted(directory.glob("*.json")):
            model = TraitModel.from_json(file_path)
            logger.debug(
                f"Loaded {model.trait_id.value} from {file_path.name}: "
                f"D={model.band_count} N={model.train_count}"
            )
            models.append(model)
        store = cls(models)
        logger.info(f"Loaded {len(store)} trait models from {directory}")
        return store

    def get(self, trait_id: TraitId | str) -> TraitModel:
        """Return the model for a trait.

        Raises
        ------
        UnknownTraitError
            Raised when the identifier is unknown or has no model loaded.
        """
        key = TraitId.parse(trait_id)
        try:
            return self._models[key]
        except KeyError:
            raise UnknownTraitError(trait_id) from None

    def check_band_consistency(
        self, trait_ids: Iterable[TraitId | str]
    ) -> tuple[str, ...]:
        """Return the band order shared by several traits.

        Raises
        ------
        BandMismatchError
            Raised when two of the models expect different bands.
        """
        band_order: tuple[str, ...] | None = None
        for trait_id in trait_ids:
            model = self.get(trait_id)
            if band_order is None:
                band_order = model.band_order
            elif model.band_order != band_order:
                raise BandMismatchError(band_order, model.band_order)
        if band_order is None:
            raise ValueError("trait_ids must not be empty")
        return band_order

    @property
    def trait_ids(self) -> tuple[TraitId, ...]:
        return tuple(self._models)

    def __contains__(self, trait_id: object) -> bool:
        try:
            return TraitId.parse(trait_id) in self._models
        except UnknownTraitError:
            return False

    def __iter__(self) -> Iterator[TraitModel]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)


@lru_cache(maxsize=1)
def default_store() -> TraitModelStore:
    """Process-wide store loaded once from ``$PLANT_TRAITS_MODEL_DIR``."""
    return TraitModelStore.from_directory()
