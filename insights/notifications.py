from __future__ import annotations
import asyncio
import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Optional
import numpy as np
import pandas as pd
from .clock import AsyncioClock
from .config import SUCCESS_PROBABILITY, SEND_DELAY, DELIVERY_DELAY

logger = logging.getLogger(__name__)

PENDING = "pending"
SENT = "sent"
DELIVERED = "delivered"
FAILED = "failed"
STATUSES = (PENDING, SENT, DELIVERED, FAILED)

_TRANSITIONS = {
    None: {PENDING},
    PENDING: {SENT, FAILED},
    SENT: {DELIVERED},
}

DEFAULT_TEMPLATE = (
    "Hello, {restaurantName}! You lost GHS {lostRevenue} in sales yesterday. "
    "During your peak time around {peakHour}, your {cancelledOrders} orders were canceled "
    "due to {stockOutItems} being out of stock. We anticipate at least {predictedOrders} "
    "orders today. Please ensure you have enough stock to avoid cancellation and loss of "
    "money. Thank you for partnering with Hubtel."
)

PLACEHOLDERS = (
    "restaurantName", "lostRevenue", "peakHour",
    "cancelledOrders", "stockOutItems", "predictedOrders",
)
REQUIRED_PLACEHOLDERS = ("restaurantName", "predictedOrders")

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


class TemplateError(ValueError):
    pass


class InvalidTransition(RuntimeError):
    pass


def validate_template(template: str) -> list[str]:
    """Lista de problemas del template (vacía si es válido)."""
    found = set(_PLACEHOLDER_RE.findall(template or ""))
    problems = [f"Missing required variable {{{name}}}" for name in REQUIRED_PLACEHOLDERS if name not in found]
    problems += [f"Unknown variable {{{name}}}" for name in sorted(found - set(PLACEHOLDERS))]
    return problems


def placeholder_values(restaurant: Mapping, prediction: Mapping) -> dict[str, str]:
    lost = int(prediction["potential_revenue"]) - int(prediction["expected_revenue"])
    cancelled = int(np.floor(float(restaurant["avg_daily_orders"]) * float(restaurant["cancellation_rate"])))
    return {
        "restaurantName": str(restaurant["name"]),
        "lostRevenue": str(lost),
        "peakHour": f"{int(restaurant['peak_hour'])}:00",
        "cancelledOrders": str(cancelled),
        "stockOutItems": " and ".join(list(restaurant["top_items"])[:2]),
        "predictedOrders": str(int(prediction["predicted_orders"])),
    }


def render_message(template: str, restaurant: Mapping, prediction: Mapping) -> str:
    problems = validate_template(template)
    if problems:
        raise TemplateError("; ".join(problems))
    values = placeholder_values(restaurant, prediction)
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)


@dataclass
class DeploymentSummary:
    messages: dict
    outcomes: Mapping
    cancelled: bool = False
    sent: int = field(init=False)
    delivered: int = field(init=False)
    failed: int = field(init=False)

    def __post_init__(self):
        values = list(self.outcomes.values())
        self.sent = sum(1 for s in values if s in (SENT, DELIVERED))
        self.delivered = sum(1 for s in values if s == DELIVERED)
        self.failed = sum(1 for s in values if s == FAILED)

    @property
    def description(self) -> str:
        return f"{self.sent} messages sent successfully, {self.failed} failed."


class NotificationSimulator:
    """Envío simulado de SMS: una tarea asyncio por restaurante.

    pending -> sent | failed ; sent -> delivered. Sin reintentos.
    """

    def __init__(self, clock=None, rng: Optional[np.random.Generator] = None,
                 success_probability: float = SUCCESS_PROBABILITY,
                 send_delay: tuple = SEND_DELAY, delivery_delay: tuple = DELIVERY_DELAY):
        if not 0.0 <= success_probability <= 1.0:
            raise ValueError("success_probability must be in [0, 1]")
        self.clock = clock or AsyncioClock()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.success_probability = success_probability
        self.send_delay = send_delay
        self.delivery_delay = delivery_delay
        self._outcomes: Mapping = MappingProxyType({})
        self._listener: Optional[Callable[[Mapping], None]] = None
        self._tasks: list = []

    @property
    def outcomes(self) -> Mapping:
        return self._outcomes

    def _set_status(self, restaurant_id: str, status: str) -> None:
        current = self._outcomes.get(restaurant_id)
        if status not in _TRANSITIONS.get(current, set()):
            raise InvalidTransition(f"{restaurant_id}: {current} -> {status}")
        # se reemplaza el mapa completo, nunca se muta
        self._outcomes = MappingProxyType({**self._outcomes, restaurant_id: status})
        logger.debug("%s: %s -> %s", restaurant_id, current, status)
        if self._listener is not None:
            self._listener(self._outcomes)

    async def _deliver(self, restaurant_id: str) -> None:
        await self.clock.sleep(float(self.rng.uniform(*self.send_delay)))
        if self.rng.random() < self.success_probability:
            self._set_status(restaurant_id, SENT)
            await self.clock.sleep(float(self.rng.uniform(*self.delivery_delay)))
            self._set_status(restaurant_id, DELIVERED)
        else:
            self._set_status(restaurant_id, FAILED)
            logger.warning("SMS to %s failed", restaurant_id)

    def build_messages(self, restaurants: pd.DataFrame, predictions: pd.DataFrame,
                       template: str, restaurant_ids=None) -> dict:
        problems = validate_template(template)
        if problems:
            raise TemplateError("; ".join(problems))

        rest_map = restaurants.set_index("id", drop=False)
        pred_map = predictions.set_index("restaurant_id", drop=False)
        ids = list(restaurants["id"]) if restaurant_ids is None else list(restaurant_ids)

        messages = {}
        for rid in ids:
            # sin restaurante o sin predicción no hay mensaje
            if rid not in rest_map.index or rid not in pred_map.index:
                continue
            messages[rid] = render_message(template, rest_map.loc[rid], pred_map.loc[rid])
        return messages

    async def deploy(self, restaurants: pd.DataFrame, predictions: pd.DataFrame,
                     template: str, restaurant_ids=None,
                     on_update: Optional[Callable[[Mapping], None]] = None) -> DeploymentSummary:
        messages = self.build_messages(restaurants, predictions, template, restaurant_ids)

        self._listener = on_update
        self._outcomes = MappingProxyType({})
        for rid in messages:
            self._set_status(rid, PENDING)

        logger.info("Deploying %d SMS (p=%.2f)", len(messages), self.success_probability)
        self._tasks = [asyncio.ensure_future(self._deliver(rid)) for rid in messages]
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        cancelled = False
        for res in results:
            if isinstance(res, asyncio.CancelledError):
                cancelled = True
            elif isinstance(res, BaseException):
                raise res

        summary = DeploymentSummary(messages=messages, outcomes=self._outcomes, cancelled=cancelled)
        logger.info("Deployment complete: %s", summary.description)
        return summary

    def cancel(self) -> int:
        """Cancela los envíos en curso. Los estados quedan como estaban."""
        n = 0
        for task in self._tasks:
            if not task.done():
                task.cancel()
                n += 1
        if n:
            logger.info("Cancelled %d in-flight SMS", n)
        return n
