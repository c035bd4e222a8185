from .forecast import (
    CommonForecast,
    restricted_predict,
    unrestricted_predict,
    common_predict,
)

__all__ = [
    "CommonForecast",
    "restricted_predict",
    "unrestricted_predict",
    "common_predict",
]
