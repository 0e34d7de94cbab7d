"""Exception types raised by the trait retrieval core."""

from __future__ import annotations


class TraitRetrievalError(Exception):
    """Base class for all trait retrieval failures."""


class UnknownTraitError(TraitRetrievalError, KeyError):
    """Requested trait identifier has no registered model."""

    def __init__(self, trait_id: object) -> None:
        super().__init__(trait_id)
        self.trait_id = trait_id

    def __str__(self) -> str:
        return f"Unknown trait identifier: {self.trait_id!r}"


class BandMismatchError(TraitRetrievalError, ValueError):
    """Input bands do not match the band order a model was fitted on."""

    def __init__(
        self,
        expected: tuple[str, ...],
        actual: tuple[str, ...],
        message: str | None = None,
    ) -> None:
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        if message is None:
            message = (
                f"Band order mismatch: expected {list(self.expected)}, "
                f"got {list(self.actual)}"
            )
        super().__init__(message)


class NumericError(TraitRetrievalError, ArithmeticError):
    """Degenerate model parameters or non-finite predictions."""


class EvaluationCancelled(TraitRetrievalError):
    """Raster evaluation was cancelled between tiles."""
