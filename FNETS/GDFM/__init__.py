from .model import GDFMModel, FactorType, Autocovariance
from .irf import (
    IRFConfig,
    IRFEstimate,
    PermutationFit,
    estimate_common_irf,
    fit_permutation,
    aggregate_permutations,
    cholesky_identification,
    draw_permutations,
)
from .selection import (
    OrderSelectionResult,
    var_order_bic,
    select_var_order,
    eigenvalue_ratio,
    default_max_r,
)
from .utils import YuleWalkerSystem, var_to_vma, yule_walker, block_toeplitz, block_partition

__all__ = [
    "GDFMModel",
    "FactorType",
    "Autocovariance",
    "IRFConfig",
    "IRFEstimate",
    "PermutationFit",
    "estimate_common_irf",
    "fit_permutation",
    "aggregate_permutations",
    "cholesky_identification",
    "draw_permutations",
    "OrderSelectionResult",
    "var_order_bic",
    "select_var_order",
    "eigenvalue_ratio",
    "default_max_r",
    "YuleWalkerSystem",
    "var_to_vma",
    "yule_walker",
    "block_toeplitz",
    "block_partition",
]
