"""
Tests for CSV/JSON serialisation and the four export dataset projections.
"""
import json
from datetime import date

import pandas as pd
import pytest

from insights.export import (
    export_datasets, export_summary, flagged_dataset, historical_dataset,
    predictions_dataset, restaurants_dataset, to_csv_text, to_json_text,
)
from tests.conftest import TODAY


class TestCsvText:

    def test_single_record(self):
        assert to_csv_text([{"a": 1, "b": 2}]) == 'a,b\n"1","2"'

    def test_header_from_first_record_and_missing_values_empty(self):
        text = to_csv_text([{"x": "one", "y": "b"}, {"x": "two", "z": "c"}])
        assert text.split("\n") == ["x,y", '"one","b"', '"two",""']

    def test_int_column_with_gaps_stays_int(self):
        text = to_csv_text([{"a": 1, "b": 2}, {"a": 3}])
        assert text == 'a,b\n"1","2"\n"3",""'

    def test_zero_is_not_blank(self):
        assert to_csv_text([{"orders": 0}]) == 'orders\n"0"'

    def test_embedded_quotes_doubled(self):
        assert to_csv_text([{"name": 'Mama "Lad"'}]) == 'name\n"Mama ""Lad"""'

    def test_empty(self):
        assert to_csv_text([]) == ""


class TestJsonText:

    def test_pretty_printed(self):
        text = to_json_text([{"a": 1}])
        assert text == '[\n  {\n    "a": 1\n  }\n]'


class TestDatasets:

    def test_predictions_projection(self, predictions, restaurants):
        df = predictions_dataset(predictions, restaurants)
        assert list(df.columns) == [
            "restaurant_name", "zone", "predicted_orders", "expected_revenue", "potential_revenue",
            "confidence_lower", "confidence_upper", "risk_level", "date",
        ]
        assert df["restaurant_name"].iloc[0] == restaurants["name"].iloc[0]

    def test_restaurants_projection_joins_items(self, restaurants):
        df = restaurants_dataset(restaurants)
        assert df.columns[-1] == "top_items"
        assert df["top_items"].iloc[0] == "; ".join(restaurants["top_items"].iloc[0])

    def test_historical_limited_to_first_1000(self, historical):
        assert len(historical) > 1000
        df = historical_dataset(historical)
        assert len(df) == 1000
        assert df["restaurant_id"].tolist() == historical["restaurant_id"].head(1000).tolist()
        assert "stock_out_items" in df.columns

    def test_flagged_only_high_risk(self, predictions, restaurants):
        df = flagged_dataset(predictions, restaurants)
        assert len(df) == int((predictions["risk_level"] == "high").sum())
        assert (df["risk_level"] == "high").all()
        high = predictions[predictions["risk_level"] == "high"]
        assert df["potential_loss"].tolist() == (high["potential_revenue"] - high["expected_revenue"]).tolist()
        assert {"contact", "cancellation_rate"} <= set(df.columns)


class TestExportDatasets:

    def test_one_file_per_dataset(self, restaurants, historical, predictions):
        files = export_datasets(["predictions", "restaurants", "historical", "flagged"], "csv",
                                restaurants, historical, predictions, today=TODAY)
        assert [f.filename for f in files] == [
            "predictions_2024-03-15.csv",
            "restaurants_2024-03-15.csv",
            "historical_data_2024-03-15.csv",
            "flagged_restaurants_2024-03-15.csv",
        ]
        assert export_summary(files) == "4 file(s) exported successfully"
        assert files[0].content.split("\n")[0].startswith("restaurant_name,zone,")
        assert all(f.mime == "text/csv" for f in files)

    def test_json_format(self, restaurants, historical, predictions):
        files = export_datasets(["restaurants"], "json", restaurants, historical, predictions, today=TODAY)
        assert files[0].filename == "restaurants_2024-03-15.json"
        data = json.loads(files[0].content)
        assert len(data) == len(restaurants)
        assert data[0]["id"] == "rest_1"

    def test_empty_dataset_skipped(self, restaurants, historical, predictions):
        low_only = predictions.assign(risk_level="low")
        files = export_datasets(["predictions", "flagged"], "csv", restaurants, historical, low_only, today=TODAY)
        assert [f.dataset for f in files] == ["predictions"]

    def test_no_selection_rejected(self, restaurants, historical, predictions):
        with pytest.raises(ValueError):
            export_datasets([], "csv", restaurants, historical, predictions)

    def test_unknown_dataset_or_format_rejected(self, restaurants, historical, predictions):
        with pytest.raises(ValueError):
            export_datasets(["orders"], "csv", restaurants, historical, predictions)
        with pytest.raises(ValueError):
            export_datasets(["predictions"], "xlsx", restaurants, historical, predictions)

    def test_default_date_is_today(self, restaurants, historical, predictions):
        files = export_datasets(["restaurants"], "csv", restaurants, historical, predictions)
        assert files[0].filename == f"restaurants_{date.today().isoformat()}.csv"

    def test_floats_keep_full_precision(self):
        revenue = 123.456789012345678
        historical = pd.DataFrame([{
            "restaurant_id": "rest_1", "date": "2024-03-15", "hour": 13, "orders": 4,
            "revenue": revenue, "cancellations": 1, "cancelled_revenue": 30.123456789012345,
            "stock_out_items": ["Waakye"],
        }])
        empty = pd.DataFrame()
        as_json = export_datasets(["historical"], "json", empty, historical, empty, today=TODAY)
        row = json.loads(as_json[0].content)[0]
        assert row["revenue"] == revenue
        assert row["cancelled_revenue"] == 30.123456789012345
        assert row["hour"] == 13
        as_csv = export_datasets(["historical"], "csv", empty, historical, empty, today=TODAY)
        cells = as_csv[0].content.split("\n")[1].split(",")
        assert float(cells[4].strip('"')) == revenue
        assert cells[2] == '"13"'
