from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional
import numpy as np
import pandas as pd
from .clock import AsyncioClock
from .config import (
    RESTAURANT_COUNT, HISTORY_DAYS, DEFAULT_PROFILE,
    REFRESH_INTERVAL_SECONDS, REFRESH_DELAY_SECONDS,
)
from .generator import generate_restaurants, generate_historical_data, generate_predictions
from .validation import ValidationState

logger = logging.getLogger(__name__)


@dataclass
class DashboardSession:
    restaurants: pd.DataFrame
    historical: pd.DataFrame
    predictions: pd.DataFrame
    validation: ValidationState
    rng: np.random.Generator
    profile: object = DEFAULT_PROFILE
    clock: object = field(default_factory=AsyncioClock)
    refresh_delay: float = REFRESH_DELAY_SECONDS
    last_updated: datetime = field(default_factory=datetime.now)
    last_refresh_at: float = 0.0
    is_refreshing: bool = False
    today: Optional[date] = None  # None = fecha real en cada refresh

    @classmethod
    def create(cls, count: int = RESTAURANT_COUNT, days: int = HISTORY_DAYS,
               profile=DEFAULT_PROFILE, seed: Optional[int] = None, clock=None,
               today: Optional[date] = None, **kwargs) -> "DashboardSession":
        rng = np.random.default_rng(seed)
        clock = clock or AsyncioClock()
        restaurants = generate_restaurants(count, rng=rng)
        historical = generate_historical_data(restaurants, days, rng=rng, today=today)
        predictions = generate_predictions(restaurants, profile, rng=rng, today=today)
        return cls(
            restaurants=restaurants,
            historical=historical,
            predictions=predictions,
            validation=ValidationState(predictions),
            rng=rng,
            profile=profile,
            clock=clock,
            last_refresh_at=clock.now(),
            today=today,
            **kwargs,
        )

    def _replace_predictions(self) -> None:
        # reemplazo completo, sin merge con el set anterior
        self.predictions = generate_predictions(self.restaurants, self.profile, rng=self.rng, today=self.today)
        self.validation.update_predictions(self.predictions)
        self.last_updated = datetime.now()
        self.last_refresh_at = self.clock.now()
        logger.info("Predictions refreshed at %s", self.last_updated.isoformat(timespec="seconds"))

    async def refresh(self) -> pd.DataFrame:
        self.is_refreshing = True
        try:
            # retardo simulado de la "API"
            await self.clock.sleep(self.refresh_delay)
            self._replace_predictions()
        finally:
            self.is_refreshing = False
        return self.predictions

    def refresh_now(self) -> pd.DataFrame:
        """Versión síncrona para el modelo de rerun de Streamlit."""
        self._replace_predictions()
        return self.predictions

    def set_profile(self, profile) -> None:
        self.profile = profile
        self.refresh_now()

    def is_due(self, interval: float = REFRESH_INTERVAL_SECONDS, now: Optional[float] = None) -> bool:
        now = self.clock.now() if now is None else now
        return now - self.last_refresh_at >= interval


class PeriodicRefresher:
    """Refresca las predicciones cada `interval` segundos hasta `stop()`."""

    def __init__(self, session: DashboardSession, interval: float = REFRESH_INTERVAL_SECONDS, clock=None):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.session = session
        self.interval = interval
        self.clock = clock or session.clock
        self.refresh_count = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await self.clock.sleep(self.interval)
            await self.session.refresh()
            self.refresh_count += 1

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.ensure_future(self._run())
        logger.info("Periodic refresh every %ss", self.interval)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
