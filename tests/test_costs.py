"""Tests for translation cost accounting."""

from datetime import timezone

import pytest

from doc_translator.translation.costs import MODEL_RATES, calculate_translation_cost


class TestCalculateTranslationCost:
    """Tests for calculate_translation_cost function."""

    def test_known_model(self):
        """Test pricing with a model from the rate table."""
        record = calculate_translation_cost("gpt-4-turbo-preview", 1000, 1000)
        assert record.cost == pytest.approx(0.04)
        assert record.kind == "translation"
        assert record.model == "gpt-4-turbo-preview"

    def test_input_and_output_priced_separately(self):
        """Test that prompt and completion tokens use their own rates."""
        record = calculate_translation_cost("gpt-3.5-turbo-0125", 2000, 1000)
        assert record.cost == pytest.approx(0.0025)
        assert record.input_tokens == 2000
        assert record.output_tokens == 1000

    def test_unknown_model_uses_cheapest_rate(self):
        """Test that unknown models fall back to the cheapest known rate."""
        record = calculate_translation_cost("some-future-model", 10000, 10000)
        cheapest = calculate_translation_cost("gpt-4o-mini", 10000, 10000)
        assert record.cost == pytest.approx(cheapest.cost)
        assert record.model == "some-future-model"

    def test_rounded_to_four_places(self):
        """Test that the cost is rounded to 4 decimal places."""
        record = calculate_translation_cost("gpt-4o", 123, 77)
        assert record.cost == round(record.cost, 4)

    def test_zero_usage(self):
        """Test that no tokens cost nothing."""
        assert calculate_translation_cost("gpt-4o", 0, 0).cost == 0

    def test_timestamp_is_utc(self):
        """Test that records are timestamped in UTC."""
        record = calculate_translation_cost("gpt-4o", 1, 1)
        assert record.timestamp.tzinfo == timezone.utc

    def test_rate_table_per_1k_tokens(self):
        """Test that every model prices both directions."""
        for rates in MODEL_RATES.values():
            assert set(rates) == {"input", "output"}
