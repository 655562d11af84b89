# Copyright (c) Syntropy Systems
"""Configuration management for promptvc."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml

from promptvc.errors import RepositoryNotInitializedError
from promptvc.pricing import ModelPrice, PricingTable

PVC_DIR_NAME = ".pvc"

DEFAULT_BASE_URL = "https://api.openai.com/v1"

# USD per 1K tokens
DEFAULT_PRICING: dict[str, ModelPrice] = {
    "gpt-4": ModelPrice(input=0.03, output=0.06),
    "gpt-4-0613": ModelPrice(input=0.03, output=0.06),
    "gpt-4-32k": ModelPrice(input=0.06, output=0.12),
    "gpt-4o": ModelPrice(input=0.005, output=0.015),
    "gpt-4o-mini": ModelPrice(input=0.00015, output=0.0006),
    "gpt-3.5-turbo": ModelPrice(input=0.0015, output=0.002),
    "gpt-3.5-turbo-0125": ModelPrice(input=0.0005, output=0.0015),
    "gpt-3.5-turbo-1106": ModelPrice(input=0.001, output=0.002),
    "gpt-3.5-turbo-instruct": ModelPrice(input=0.0015, output=0.002),
}

DEFAULT_PRICING_MODEL = "gpt-4"


@dataclass
class PvcConfig:
    """Configuration for promptvc."""

    # Model used by `pvc test` when --model is not given
    model: str = "gpt-4"

    # Maximum provider requests in flight
    concurrency: int = 5

    # Additional attempts per test case after a provider failure
    max_retries: int = 3

    # Per-request timeout for the provider client (seconds)
    request_timeout: float = 60.0

    # OpenAI-compatible API root
    base_url: str = DEFAULT_BASE_URL

    pricing: dict[str, ModelPrice] = field(default_factory=lambda: dict(DEFAULT_PRICING))
    default_pricing_model: str = DEFAULT_PRICING_MODEL

    def pricing_table(self) -> PricingTable:
        """Build the pricing lookup for the test engine."""
        return PricingTable(self.pricing, self.default_pricing_model)


def default_config_data() -> dict[str, object]:
    """Values written to config.yaml by `pvc init`."""
    defaults = PvcConfig()
    return {
        "model": defaults.model,
        "concurrency": defaults.concurrency,
        "max_retries": defaults.max_retries,
        "request_timeout": defaults.request_timeout,
        "base_url": defaults.base_url,
    }


def find_pvc_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .pvc directory by walking up from start_path.

    Returns None if no .pvc directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        pvc_dir = current / PVC_DIR_NAME
        if pvc_dir.is_dir():
            return pvc_dir
        current = current.parent

    # Check root
    pvc_dir = current / PVC_DIR_NAME
    if pvc_dir.is_dir():
        return pvc_dir

    return None


def require_pvc_dir(start_path: Path | None = None) -> Path:
    """Get the .pvc directory or raise an error if not found."""
    pvc_dir = find_pvc_dir(start_path)
    if pvc_dir is None:
        msg = "Not a prompt-vcs repository (.pvc not found). Run 'pvc init' first."
        raise RepositoryNotInitializedError(msg)
    return pvc_dir


def _parse_pricing(data: object) -> dict[str, ModelPrice]:
    pricing: dict[str, ModelPrice] = {}
    if not isinstance(data, dict):
        return pricing
    for name, entry in cast("dict[object, object]", data).items():
        if not isinstance(entry, dict):
            continue
        entry_dict = cast("dict[str, object]", entry)
        input_price = entry_dict.get("input")
        output_price = entry_dict.get("output")
        if isinstance(input_price, (int, float)) and isinstance(output_price, (int, float)):
            pricing[str(name)] = ModelPrice(input=float(input_price), output=float(output_price))
    return pricing


def load_config(pvc_dir: Path | None = None) -> PvcConfig:
    """Load configuration from .pvc/config.yaml or defaults.

    Looks for config in:
    1. Provided pvc_dir
    2. Nearest .pvc directory walking up
    3. Defaults

    OPENAI_BASE_URL, when set, overrides base_url.
    """
    config = PvcConfig()

    if pvc_dir is None:
        pvc_dir = find_pvc_dir()

    config_path = pvc_dir / "config.yaml" if pvc_dir is not None else None

    if config_path is not None and config_path.exists():
        with config_path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        model = data.get("model")
        if isinstance(model, str) and model:
            config.model = model
        concurrency = data.get("concurrency")
        if isinstance(concurrency, int) and concurrency >= 1:
            config.concurrency = concurrency
        max_retries = data.get("max_retries")
        if isinstance(max_retries, int) and max_retries >= 0:
            config.max_retries = max_retries
        request_timeout = data.get("request_timeout")
        if isinstance(request_timeout, (int, float)) and request_timeout > 0:
            config.request_timeout = float(request_timeout)
        base_url = data.get("base_url")
        if isinstance(base_url, str) and base_url:
            config.base_url = base_url
        config.pricing.update(_parse_pricing(data.get("pricing")))
        default_pricing_model = data.get("default_pricing_model")
        if isinstance(default_pricing_model, str) and default_pricing_model in config.pricing:
            config.default_pricing_model = default_pricing_model

    env_base_url = os.environ.get("OPENAI_BASE_URL")
    if env_base_url:
        config.base_url = env_base_url

    return config
