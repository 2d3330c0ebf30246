"""
Tests for the variance-threshold validation filter and the operator's
validated set (auto-approval, manual overrides, bulk actions).
"""
import pandas as pd
import pytest

from insights.validation import ValidationState, filter_unusual, partition_predictions
from tests.conftest import make_predictions, make_restaurant


PREDS = make_predictions({
    "rest_1": (0, 0),
    "rest_2": (15, 0),      # fuera por pedidos
    "rest_3": (-5, 350),    # fuera por ingresos
    "rest_4": (8, -150),
    "rest_5": (-10, 200),   # justo en el límite
})


class TestPartition:

    def test_order_variance_beyond_threshold_is_unusual(self):
        normal, unusual = partition_predictions(make_predictions({"rest_9": (15, 0)}), 10, 10_000)
        assert unusual == {"rest_9"}
        assert normal == set()

    def test_boundaries_are_inclusive(self):
        normal, unusual = partition_predictions(PREDS, 10, 200)
        assert normal == {"rest_1", "rest_4", "rest_5"}
        assert unusual == {"rest_2", "rest_3"}

    def test_exhaustive_and_disjoint(self, predictions):
        normal, unusual = partition_predictions(predictions, 8, 150)
        assert normal.isdisjoint(unusual)
        assert normal | unusual == set(predictions["restaurant_id"])

    def test_tightening_only_moves_normal_to_unusual(self, predictions):
        wide_normal, wide_unusual = partition_predictions(predictions, 20, 400)
        tight_normal, tight_unusual = partition_predictions(predictions, 5, 100)
        assert tight_normal <= wide_normal
        assert wide_unusual <= tight_unusual

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            partition_predictions(PREDS, -1, 10)

    def test_empty_predictions(self):
        assert partition_predictions(pd.DataFrame(), 10, 10) == (frozenset(), frozenset())


class TestValidationState:

    def test_normal_ids_auto_validated(self):
        state = ValidationState(PREDS, 10, 200)
        assert state.validated == {"rest_1", "rest_4", "rest_5"}

    def test_toggle_unusual(self):
        state = ValidationState(PREDS, 10, 200)
        assert state.toggle("rest_2") is True
        assert "rest_2" in state.validated
        assert state.toggle("rest_2") is False
        assert "rest_2" not in state.validated

    def test_toggle_normal_or_unknown_rejected(self):
        state = ValidationState(PREDS, 10, 200)
        with pytest.raises(ValueError):
            state.toggle("rest_1")
        with pytest.raises(ValueError):
            state.toggle("rest_404")

    def test_override_survives_while_still_unusual(self):
        state = ValidationState(PREDS, 10, 200)
        state.toggle("rest_3")
        state.set_thresholds(12, 200)
        assert "rest_3" in state.unusual
        assert "rest_3" in state.validated

    def test_override_discarded_when_id_becomes_normal(self):
        state = ValidationState(PREDS, 10, 200)
        # rest_4 pasa a inusual (conserva su aprobación) y el operador lo excluye
        state.set_thresholds(5, 200)
        assert "rest_4" in state.unusual
        assert "rest_4" in state.validated
        state.toggle("rest_4")
        assert "rest_4" not in state.validated
        # al volver a normal se re-aprueba sin importar el override
        state.set_thresholds(10, 200)
        assert "rest_4" in state.validated

    def test_unusual_ids_start_excluded(self):
        state = ValidationState(PREDS, 10, 200)
        assert state.unusual == {"rest_2", "rest_3"}
        assert state.validated.isdisjoint(state.unusual)

    def test_validated_set_replaced_not_mutated(self):
        state = ValidationState(PREDS, 10, 200)
        before = state.validated
        state.toggle("rest_2")
        assert state.validated is not before
        assert "rest_2" not in before

    def test_select_all_with_filter(self):
        state = ValidationState(PREDS, 10, 200)
        state.select_all(["rest_3"])
        assert state.validated == {"rest_1", "rest_4", "rest_5", "rest_3"}
        state.select_all()
        assert state.validated == {"rest_1", "rest_2", "rest_3", "rest_4", "rest_5"}

    def test_select_only_normal(self):
        state = ValidationState(PREDS, 10, 200)
        state.select_all()
        state.select_only_normal()
        assert state.validated == state.normal

    def test_update_predictions_repartitions(self):
        state = ValidationState(PREDS, 10, 200)
        state.toggle("rest_2")
        state.update_predictions(make_predictions({"rest_1": (30, 0), "rest_2": (20, 0)}))
        assert state.normal == set()
        assert state.validated == {"rest_1", "rest_2"}


class TestFilterUnusual:

    def test_search_by_name_and_zone(self):
        restaurants = pd.DataFrame([
            make_restaurant("rest_2", name="KFC Osu", zone="Greater Accra"),
            make_restaurant("rest_3", name="Jollof King", zone="Ashanti"),
        ])
        unusual = {"rest_2", "rest_3"}
        assert filter_unusual(PREDS, restaurants, unusual)["restaurant_id"].tolist() == ["rest_2", "rest_3"]
        assert filter_unusual(PREDS, restaurants, unusual, "kfc")["restaurant_id"].tolist() == ["rest_2"]
        assert filter_unusual(PREDS, restaurants, unusual, "ASHANTI")["restaurant_id"].tolist() == ["rest_3"]
        assert filter_unusual(PREDS, restaurants, unusual, "nothing").empty
