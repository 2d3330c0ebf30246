from __future__ import annotations
import logging
import pandas as pd
from .config import ORDER_VARIANCE_THRESHOLD, REVENUE_VARIANCE_THRESHOLD

logger = logging.getLogger(__name__)


def partition_predictions(predictions: pd.DataFrame, order_threshold: float,
                          revenue_threshold: float) -> tuple[frozenset, frozenset]:
    """Divide los ids en (normal, unusual) según los umbrales de varianza.

    normal: |order_variance| <= order_threshold y |revenue_variance| <= revenue_threshold.
    unusual: el resto.
    """
    if order_threshold < 0 or revenue_threshold < 0:
        raise ValueError("Thresholds must be >= 0")
    if predictions.empty:
        return frozenset(), frozenset()

    order_var = pd.to_numeric(predictions["order_variance"], errors="coerce").abs()
    rev_var = pd.to_numeric(predictions["revenue_variance"], errors="coerce").abs()
    mask = (order_var <= order_threshold) & (rev_var <= revenue_threshold)

    normal = frozenset(predictions.loc[mask, "restaurant_id"])
    unusual = frozenset(predictions.loc[~mask, "restaurant_id"])
    return normal, unusual


def filter_unusual(predictions: pd.DataFrame, restaurants: pd.DataFrame,
                   unusual, search: str = "") -> pd.DataFrame:
    """Predicciones inusuales con nombre/zona, filtradas por texto."""
    flagged = predictions[predictions["restaurant_id"].isin(unusual)]
    view = flagged.merge(
        restaurants[["id", "name", "zone", "contact", "cancellation_rate"]],
        left_on="restaurant_id", right_on="id", how="inner",
    ).drop(columns=["id"])

    term = (search or "").strip().lower()
    if term:
        hit = (view["name"].str.lower().str.contains(term, regex=False)
               | view["zone"].str.lower().str.contains(term, regex=False))
        view = view[hit]
    return view.reset_index(drop=True)


class ValidationState:
    """Conjunto de restaurantes validados por el operador.

    Los ids normales se aprueban solos cada vez que se recalcula la partición.
    Los overrides manuales solo sobreviven para ids que siguen siendo inusuales.
    `validated` se reemplaza completo en cada escritura.
    """

    def __init__(self, predictions: pd.DataFrame,
                 order_threshold: float = ORDER_VARIANCE_THRESHOLD,
                 revenue_threshold: float = REVENUE_VARIANCE_THRESHOLD):
        self.predictions = predictions
        self.order_threshold = order_threshold
        self.revenue_threshold = revenue_threshold
        self.normal: frozenset = frozenset()
        self.unusual: frozenset = frozenset()
        self.validated: frozenset = frozenset()
        self._recompute()

    def _recompute(self) -> None:
        normal, unusual = partition_predictions(
            self.predictions, self.order_threshold, self.revenue_threshold
        )
        self.normal, self.unusual = normal, unusual
        self.validated = normal | (self.validated & unusual)
        logger.debug("Validation: %d normal, %d unusual, %d validated",
                     len(normal), len(unusual), len(self.validated))

    def set_thresholds(self, order_threshold: float, revenue_threshold: float) -> None:
        if order_threshold < 0 or revenue_threshold < 0:
            raise ValueError("Thresholds must be >= 0")
        self.order_threshold = order_threshold
        self.revenue_threshold = revenue_threshold
        self._recompute()

    def update_predictions(self, predictions: pd.DataFrame) -> None:
        self.predictions = predictions
        self._recompute()

    def toggle(self, restaurant_id: str) -> bool:
        """Alterna un id inusual. Devuelve si quedó validado."""
        if restaurant_id not in self.unusual:
            if restaurant_id in self.normal:
                raise ValueError(f"{restaurant_id} is within thresholds and auto-approved")
            raise ValueError(f"Unknown restaurant: {restaurant_id}")
        if restaurant_id in self.validated:
            self.validated = self.validated - {restaurant_id}
            return False
        self.validated = self.validated | {restaurant_id}
        return True

    def select_all(self, filtered_unusual=None) -> None:
        """normal + inusuales filtrados (todos los inusuales si no se pasa filtro)."""
        chosen = self.unusual if filtered_unusual is None else frozenset(filtered_unusual) & self.unusual
        self.validated = self.normal | chosen

    def select_only_normal(self) -> None:
        self.validated = self.normal

    def is_validated(self, restaurant_id: str) -> bool:
        return restaurant_id in self.validated
