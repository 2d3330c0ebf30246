from __future__ import annotations
from datetime import date, timedelta
from typing import Mapping
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from .config import OPENING_HOUR, CLOSING_HOUR
from .notifications import SENT, DELIVERED, FAILED, PENDING


def overview_metrics(restaurants: pd.DataFrame, predictions: pd.DataFrame) -> dict:
    return {
        "total_restaurants": int(len(restaurants)),
        "total_predicted_orders": int(predictions["predicted_orders"].sum()),
        "total_expected_revenue": int(predictions["expected_revenue"].sum()),
        "total_potential_revenue": int(predictions["potential_revenue"].sum()),
        "high_risk_count": int((predictions["risk_level"] == "high").sum()),
    }


def trend_data(predictions: pd.DataFrame, days: int = 7, chunk: int = 40,
               today: date | None = None) -> pd.DataFrame:
    """Tendencia simulada: cada día suma un bloque consecutivo de `chunk` predicciones."""
    today = today or date.today()
    rows = []
    for i in range(days):
        block = predictions.iloc[i * chunk:(i + 1) * chunk]
        rows.append({
            "date": (today - timedelta(days=days - 1 - i)).isoformat(),
            "orders": int(block["predicted_orders"].sum()),
            "expected_revenue": int(block["expected_revenue"].sum()),
            "potential_revenue": int(block["potential_revenue"].sum()),
            "confidence_lower": int(block["confidence_lower"].sum()),
            "confidence_upper": int(block["confidence_upper"].sum()),
        })
    return pd.DataFrame(rows)


def comparison_data(predictions: pd.DataFrame, restaurants: pd.DataFrame, limit: int = 20) -> pd.DataFrame:
    comp = predictions.head(limit).merge(
        restaurants[["id", "name", "avg_daily_orders"]],
        left_on="restaurant_id", right_on="id", how="left",
    )
    hist = comp["avg_daily_orders"].fillna(0)
    return pd.DataFrame({
        "name": comp["name"].fillna("Unknown").str.split(" ").str[0],
        "predicted": comp["predicted_orders"],
        "historical": hist.astype(int),
        "variance_pct": (comp["predicted_orders"] - hist) / hist.where(hist > 0, 1) * 100,
    })


def hourly_profile(historical: pd.DataFrame) -> pd.DataFrame:
    hours = range(OPENING_HOUR, CLOSING_HOUR)
    if historical.empty:
        return pd.DataFrame({"orders": 0, "revenue": 0.0, "cancellations": 0}, index=pd.Index(hours, name="hour"))
    agg = historical.groupby("hour")[["orders", "revenue", "cancellations"]].sum()
    return agg.reindex(hours, fill_value=0)


def status_counts(outcomes: Mapping) -> dict:
    values = list(outcomes.values())
    return {
        "pending": sum(1 for s in values if s == PENDING),
        "sent": sum(1 for s in values if s in (SENT, DELIVERED)),
        "delivered": sum(1 for s in values if s == DELIVERED),
        "failed": sum(1 for s in values if s == FAILED),
    }


# ====== figuras (matplotlib) ======

def trend_figure(trend: pd.DataFrame):
    fig, ax = plt.subplots(figsize=(6, 3.2))
    ax.fill_between(trend["date"], trend["confidence_lower"], trend["confidence_upper"], alpha=0.15)
    ax.plot(trend["date"], trend["orders"], marker="o")
    ax.set_ylabel("# Orders")
    ax.set_title("Order predictions (7 days)")
    ax.tick_params(axis="x", rotation=30)
    fig.tight_layout()
    return fig


def revenue_figure(trend: pd.DataFrame):
    fig, ax = plt.subplots(figsize=(6, 3.2))
    ax.plot(trend["date"], trend["expected_revenue"], marker="o", label="Expected")
    ax.plot(trend["date"], trend["potential_revenue"], marker="o", linestyle="--", label="Potential")
    ax.set_ylabel("GHS")
    ax.set_title("Revenue forecast")
    ax.legend()
    ax.tick_params(axis="x", rotation=30)
    fig.tight_layout()
    return fig


def comparison_figure(comp: pd.DataFrame):
    fig, ax = plt.subplots(figsize=(6, 3.2))
    x = range(len(comp))
    ax.bar([i - 0.2 for i in x], comp["predicted"], width=0.4, label="Predicted")
    ax.bar([i + 0.2 for i in x], comp["historical"], width=0.4, label="Historical avg")
    ax.set_xticks(list(x))
    ax.set_xticklabels(comp["name"], rotation=60, fontsize=7)
    ax.set_ylabel("# Orders")
    ax.set_title("Prediction vs historical")
    ax.legend()
    fig.tight_layout()
    return fig


def hourly_figure(profile: pd.DataFrame):
    fig, ax = plt.subplots(figsize=(6, 3.2))
    ax.bar(profile.index, profile["orders"], label="Orders")
    ax.bar(profile.index, profile["cancellations"], label="Cancellations")
    ax.set_xticks(list(profile.index))
    ax.set_xlabel("Hour")
    ax.set_ylabel("# Orders")
    ax.set_title("Orders by hour")
    ax.legend()
    fig.tight_layout()
    return fig


def variance_figure(predictions: pd.DataFrame, order_threshold: float, revenue_threshold: float):
    fig, ax = plt.subplots(figsize=(6, 3.2))
    ax.scatter(predictions["order_variance"], predictions["revenue_variance"], s=10)
    ax.axvline(order_threshold, linestyle=":")
    ax.axvline(-order_threshold, linestyle=":")
    ax.axhline(revenue_threshold, linestyle=":")
    ax.axhline(-revenue_threshold, linestyle=":")
    ax.set_xlabel("Order variance")
    ax.set_ylabel("Revenue variance (GHS)")
    ax.set_title("Variance vs thresholds")
    fig.tight_layout()
    return fig
