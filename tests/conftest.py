"""Pytest configuration and fixtures."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from insights.generator import generate_restaurants, generate_historical_data, generate_predictions

TODAY = date(2024, 3, 15)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def restaurants(rng):
    return generate_restaurants(60, rng=rng)


@pytest.fixture
def historical(restaurants, rng):
    return generate_historical_data(restaurants, days=5, rng=rng, today=TODAY)


@pytest.fixture
def predictions(restaurants, rng):
    return generate_predictions(restaurants, rng=rng, today=TODAY)


def make_restaurant(rid="rest_1", avg_daily_orders=20, avg_revenue=400, cancellation_rate=0.25,
                    peak_hour=13, name="Tasty Queen", zone="Greater Accra"):
    return {
        "id": rid,
        "name": name,
        "zone": zone,
        "contact": "+233 024 1234567",
        "location": "Tema",
        "avg_daily_orders": avg_daily_orders,
        "avg_revenue": avg_revenue,
        "cancellation_rate": cancellation_rate,
        "peak_hour": peak_hour,
        "top_items": ["Jollof Rice", "Waakye", "Kenkey", "Bofrot", "Shawarma"],
        "longitude": -0.2,
        "latitude": 5.6,
    }


def make_predictions(variances):
    """Predicciones mínimas: {restaurant_id: (order_variance, revenue_variance)}."""
    return pd.DataFrame([
        {"restaurant_id": rid, "order_variance": ov, "revenue_variance": rv,
         "predicted_orders": 20 + ov, "expected_revenue": 400 + rv, "potential_revenue": 500 + rv,
         "risk_level": "low"}
        for rid, (ov, rv) in variances.items()
    ])
