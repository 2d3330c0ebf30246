from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

SEED = 42

RESTAURANT_COUNT = 280
HISTORY_DAYS = 30

# horas de servicio [OPENING_HOUR, CLOSING_HOUR)
OPENING_HOUR = 6
CLOSING_HOUR = 22


@dataclass(frozen=True)
class PredictionProfile:
    multiplier_low: float
    multiplier_high: float
    variance: float


PREDICTION_PROFILES = {
    "stable": PredictionProfile(0.9, 1.1, 0.15),
    # rango amplio: produce predicciones con riesgo visible
    "volatile": PredictionProfile(0.7, 1.3, 0.25),
}
DEFAULT_PROFILE = "volatile"

ORDER_VARIANCE_THRESHOLD = 10
REVENUE_VARIANCE_THRESHOLD = 200

# SMS simulado (segundos)
SEND_DELAY = (1.0, 3.0)
DELIVERY_DELAY = (2.0, 5.0)
SUCCESS_PROBABILITY = 0.90
PILOT_SUCCESS_PROBABILITY = 0.95

REFRESH_INTERVAL_SECONDS = 24 * 60 * 60
FAST_REFRESH_INTERVAL_SECONDS = 5 * 60
REFRESH_DELAY_SECONDS = 1.0

HISTORICAL_EXPORT_LIMIT = 1000

BASE_DIR = Path(".")
EXPORT_DIR = BASE_DIR / "exports"
