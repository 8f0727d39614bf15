from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class InvalidRunInputError(DomainError):
    """Invalid run parameters."""


class DataIntegrityError(DomainError):
    """Reconstructed data is inconsistent; the run must stop."""


class NegativeFeeError(DataIntegrityError):
    """Fee accounting produced a negative amount."""


class FeeRateBracketError(DataIntegrityError):
    """Not enough fee growth data points to estimate a rate."""


class LiquidityReconstructionError(DataIntegrityError):
    """Liquidity history can not be rebuilt from the sampled readings."""


class NegativeLiquidityError(LiquidityReconstructionError):
    """Liquidity events remove more than the position holds."""
