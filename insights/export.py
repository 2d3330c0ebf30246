from __future__ import annotations
import csv
import json
import logging
from dataclasses import dataclass
from datetime import date
import pandas as pd
from .config import HISTORICAL_EXPORT_LIMIT

logger = logging.getLogger(__name__)

DATASETS = ("predictions", "restaurants", "historical", "flagged")
FORMATS = ("csv", "json")

FILE_PREFIXES = {
    "predictions": "predictions",
    "restaurants": "restaurants",
    "historical": "historical_data",
    "flagged": "flagged_restaurants",
}
MIME_TYPES = {"csv": "text/csv", "json": "application/json"}


@dataclass(frozen=True)
class ExportFile:
    dataset: str
    filename: str
    content: str
    mime: str


def to_csv_text(records: list[dict]) -> str:
    """Cabecera = claves del primer registro; cada valor entre comillas dobles."""
    if not records:
        return ""
    headers = list(records[0].keys())
    # object: un int con huecos no pasa a float
    rows = [[r.get(h) for h in headers] for r in records]
    df = pd.DataFrame(rows, columns=headers, dtype=object)
    body = df.to_csv(index=False, header=False, quoting=csv.QUOTE_ALL,
                     na_rep="", lineterminator="\n")
    return ",".join(headers) + "\n" + body.rstrip("\n")


def to_json_text(records: list[dict]) -> str:
    return json.dumps(records, indent=2, ensure_ascii=False, default=str)


def _join_items(values) -> str:
    return "; ".join(values) if isinstance(values, (list, tuple)) else ""


def _records(df: pd.DataFrame) -> list[dict]:
    # tipos numpy -> python, NaN -> None, sin recortar decimales
    return df.astype(object).where(df.notna(), None).to_dict(orient="records")


def predictions_dataset(predictions: pd.DataFrame, restaurants: pd.DataFrame) -> pd.DataFrame:
    df = predictions.merge(restaurants[["id", "name", "zone"]],
                           left_on="restaurant_id", right_on="id", how="left")
    return pd.DataFrame({
        "restaurant_name": df["name"].fillna("Unknown"),
        "zone": df["zone"].fillna(""),
        "predicted_orders": df["predicted_orders"],
        "expected_revenue": df["expected_revenue"],
        "potential_revenue": df["potential_revenue"],
        "confidence_lower": df["confidence_lower"],
        "confidence_upper": df["confidence_upper"],
        "risk_level": df["risk_level"],
        "date": df["date"],
    })


def restaurants_dataset(restaurants: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame({
        "id": restaurants["id"],
        "name": restaurants["name"],
        "zone": restaurants["zone"],
        "contact": restaurants["contact"],
        "location": restaurants["location"],
        "avg_daily_orders": restaurants["avg_daily_orders"],
        "avg_revenue": restaurants["avg_revenue"],
        "cancellation_rate": restaurants["cancellation_rate"],
        "peak_hour": restaurants["peak_hour"],
        "top_items": restaurants["top_items"].map(_join_items),
    })


def historical_dataset(historical: pd.DataFrame, limit: int = HISTORICAL_EXPORT_LIMIT) -> pd.DataFrame:
    h = historical.head(limit)
    return pd.DataFrame({
        "restaurant_id": h["restaurant_id"],
        "date": h["date"],
        "hour": h["hour"],
        "orders": h["orders"],
        "revenue": h["revenue"],
        "cancellations": h["cancellations"],
        "cancelled_revenue": h["cancelled_revenue"],
        "stock_out_items": h["stock_out_items"].map(_join_items),
    })


def flagged_dataset(predictions: pd.DataFrame, restaurants: pd.DataFrame) -> pd.DataFrame:
    high = predictions[predictions["risk_level"] == "high"]
    df = high.merge(restaurants[["id", "name", "zone", "contact", "cancellation_rate"]],
                    left_on="restaurant_id", right_on="id", how="left")
    return pd.DataFrame({
        "restaurant_name": df["name"].fillna("Unknown"),
        "zone": df["zone"].fillna(""),
        "contact": df["contact"].fillna(""),
        "predicted_orders": df["predicted_orders"],
        "expected_revenue": df["expected_revenue"],
        "potential_loss": df["potential_revenue"] - df["expected_revenue"],
        "risk_level": df["risk_level"],
        "cancellation_rate": df["cancellation_rate"].fillna(0),
    })


def build_dataset(name: str, restaurants: pd.DataFrame, historical: pd.DataFrame,
                  predictions: pd.DataFrame) -> pd.DataFrame:
    if name == "predictions":
        return predictions_dataset(predictions, restaurants)
    if name == "restaurants":
        return restaurants_dataset(restaurants)
    if name == "historical":
        return historical_dataset(historical)
    if name == "flagged":
        return flagged_dataset(predictions, restaurants)
    raise ValueError(f"Unknown dataset: {name}")


def export_datasets(selected, fmt: str, restaurants: pd.DataFrame, historical: pd.DataFrame,
                    predictions: pd.DataFrame, today: date | None = None) -> list[ExportFile]:
    requested = set(selected or [])
    unknown = requested - set(DATASETS)
    if unknown:
        raise ValueError(f"Unknown dataset: {sorted(unknown)[0]}")
    selected = [name for name in DATASETS if name in requested]
    if not selected:
        raise ValueError("Select at least one dataset to export")
    if fmt not in FORMATS:
        raise ValueError(f"Unknown export format: {fmt}")

    stamp = (today or date.today()).isoformat()
    files = []
    for name in selected:
        df = build_dataset(name, restaurants, historical, predictions)
        if df.empty:
            logger.info("Skipping empty dataset %s", name)
            continue
        records = _records(df)
        content = to_csv_text(records) if fmt == "csv" else to_json_text(records)
        files.append(ExportFile(
            dataset=name,
            filename=f"{FILE_PREFIXES[name]}_{stamp}.{fmt}",
            content=content,
            mime=MIME_TYPES[fmt],
        ))
    logger.info("Exported %d file(s) as %s", len(files), fmt)
    return files


def export_summary(files: list[ExportFile]) -> str:
    return f"{len(files)} file(s) exported successfully"
