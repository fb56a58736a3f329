"""Model pricing used for cost estimates, in USD per million tokens."""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class ModelPricing:
    """Input and output price per million tokens."""

    input: float
    output: float


MODEL_PRICING: Dict[str, ModelPricing] = {
    "gpt-4o": ModelPricing(input=2.50, output=10.00),
    "gpt-4o-mini": ModelPricing(input=0.15, output=0.60),
    "gpt-4.1": ModelPricing(input=2.00, output=8.00),
    "gpt-4.1-mini": ModelPricing(input=0.40, output=1.60),
    "claude-sonnet-4-20250514": ModelPricing(input=3.00, output=15.00),
    "claude-opus-4-20250514": ModelPricing(input=15.00, output=75.00),
    "claude-haiku-3-5-20241022": ModelPricing(input=0.80, output=4.00),
}
DEFAULT_PRICING = ModelPricing(input=3.00, output=15.00)


def pricing_for(model: str) -> ModelPricing:
    """Resolve pricing for a model name.

    Exact matches win; otherwise the longest known name that prefixes the
    model (ignoring date suffixes) is used, then the default price.

    Args:
        model: Model identifier, optionally provider-qualified.

    Returns:
        The pricing entry for the model.
    """

    name = model.split("/")[-1]
    if name in MODEL_PRICING:
        return MODEL_PRICING[name]
    candidates = [
        key for key in MODEL_PRICING if name.startswith(key.split("-20")[0])
    ]
    if candidates:
        return MODEL_PRICING[max(candidates, key=lambda key: len(key.split("-20")[0]))]
    return DEFAULT_PRICING


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Return the estimated cost in USD of a token count for a model."""

    pricing = pricing_for(model)
    return (input_tokens * pricing.input + output_tokens * pricing.output) / 1_000_000
