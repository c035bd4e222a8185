__version__ = "0.1.0"

from .GDFM import (
    GDFMModel,
    FactorType,
    Autocovariance,
    IRFConfig,
    IRFEstimate,
    estimate_common_irf,
    var_to_vma,
    yule_walker,
    select_var_order,
)
from .forecast import (
    CommonForecast,
    restricted_predict,
    unrestricted_predict,
    common_predict,
)

__all__ = [
    "GDFMModel",
    "FactorType",
    "Autocovariance",
    "IRFConfig",
    "IRFEstimate",
    "estimate_common_irf",
    "var_to_vma",
    "yule_walker",
    "select_var_order",
    "CommonForecast",
    "restricted_predict",
    "unrestricted_predict",
    "common_predict",
]
