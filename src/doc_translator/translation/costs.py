"""Per-request translation cost accounting."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

# USD per 1K tokens
MODEL_RATES: dict[str, dict[str, float]] = {
    "gpt-4-turbo-preview": {"input": 0.01, "output": 0.03},
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-3.5-turbo-0125": {"input": 0.0005, "output": 0.0015},
}


class CostRecord(BaseModel):
    """Cost of one translation run, with the usage it was computed from."""

    kind: str = "translation"
    cost: float
    input_tokens: int
    output_tokens: int
    model: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _fallback_rates() -> dict[str, float]:
    return min(MODEL_RATES.values(), key=lambda r: r["input"] + r["output"])


def calculate_translation_cost(
    model: str, input_tokens: int, output_tokens: int
) -> CostRecord:
    """Price a translation run.

    Unknown models are priced at the cheapest known rate.

    Args:
        model: Chat model name.
        input_tokens: Prompt tokens consumed.
        output_tokens: Completion tokens produced.

    Returns:
        CostRecord with the cost rounded to 4 decimal places.
    """
    rates = MODEL_RATES.get(model) or _fallback_rates()
    input_cost = (input_tokens / 1000) * rates["input"]
    output_cost = (output_tokens / 1000) * rates["output"]
    return CostRecord(
        cost=round(input_cost + output_cost, 4),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        model=model,
    )
