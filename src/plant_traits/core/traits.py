"""Closed set of trait identifiers and their display metadata."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from plant_traits.core.errors import UnknownTraitError


class TraitId(StrEnum):
    """Trait identifiers with a fitted GPR model."""

    LAI = "LAI"
    CAB = "Cab"
    CW = "Cw"
    CM = "Cm"
    LAI_CAB = "laiCab"
    LAI_CW = "laiCw"
    LAI_CM = "laiCm"

    @classmethod
    def parse(cls, value: TraitId | str) -> TraitId:
        """Resolve a trait identifier from a member or its string value.

        Parameters
        ----------
        value : TraitId | str
            Trait member or exact identifier string such as ``"laiCab"``.

        Returns
        -------
        TraitId
            Matching enum member.

        Raises
        ------
        UnknownTraitError
            Raised when ``value`` names no known trait.

        Examples
        --------
        >>> TraitId.parse("laiCab") is TraitId.LAI_CAB
        True
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownTraitError(value) from None

    @property
    def info(self) -> TraitInfo:
        return TRAIT_CATALOGUE[self]

    @property
    def legend_title(self) -> str:
        return self.info.legend_title


@dataclass(frozen=True)
class TraitInfo:
    """Human-readable label and unit for one trait."""

    label: str
    unit: str

    @property
    def legend_title(self) -> str:
        return f"{self.label} ({self.unit})"


TRAIT_CATALOGUE: dict[TraitId, TraitInfo] = {
    TraitId.LAI: TraitInfo("Leaf Area Index", "m²/m²"),
    TraitId.LAI_CAB: TraitInfo("Canopy Chlorophyll", "g/m²"),
    TraitId.LAI_CW: TraitInfo("Canopy Water Content", "g/m²"),
    TraitId.LAI_CM: TraitInfo("Canopy Dry Matter", "g/m²"),
    TraitId.CAB: TraitInfo("Leaf Chlorophyll", "ug/cm²"),
    TraitId.CW: TraitInfo("Leaf Water Content", "cm"),
    TraitId.CM: TraitInfo("Leaf Dry Matter", "g/cm²"),
}
