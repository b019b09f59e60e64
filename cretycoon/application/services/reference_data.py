"""Static reference data loading.

Neighborhoods, product types, market events and the deal book are read once
from JSON before any run starts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from cretycoon.core.exceptions import DataLoadError, ReferenceDataError
from cretycoon.core.logging import get_logger
from cretycoon.domain.models.deal import Deal
from cretycoon.domain.models.market import MarketEvent, Neighborhood
from cretycoon.domain.models.product import ProductType

log = get_logger(__name__)

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent.parent / "data"

M = TypeVar("M", bound=BaseModel)


@dataclass
class ReferenceData:
    """Immutable-by-convention reference collections for a run."""

    neighborhoods: list[Neighborhood] = field(default_factory=list)
    product_types: list[ProductType] = field(default_factory=list)
    events: list[MarketEvent] = field(default_factory=list)
    deals: list[Deal] = field(default_factory=list)

    @cached_property
    def products_by_id(self) -> dict[str, ProductType]:
        return {p.id: p for p in self.product_types}

    def product(self, product_type_id: str) -> ProductType:
        """Product type by id.

        Raises:
            ReferenceDataError: If the id is unknown
        """
        product = self.products_by_id.get(product_type_id)
        if product is None:
            raise ReferenceDataError("product type", product_type_id)
        return product

    def deal(self, deal_id: str) -> Deal:
        deal = next((d for d in self.deals if d.id == deal_id), None)
        if deal is None:
            raise ReferenceDataError("deal", deal_id)
        return deal

    def neighborhood(self, neighborhood_id: str) -> Neighborhood:
        """Starting-state neighborhood record (not the live run copy)."""
        n = next((x for x in self.neighborhoods if x.id == neighborhood_id), None)
        if n is None:
            raise ReferenceDataError("neighborhood", neighborhood_id)
        return n


def _read_collection(path: Path, key: str, model: type[M]) -> list[M]:
    try:
        with open(path, encoding="utf-8") as f:
            raw: dict[str, Any] = json.load(f)
    except FileNotFoundError as e:
        raise DataLoadError(f"Reference data file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON in {path}: {e}") from e

    items = raw.get(key)
    if not isinstance(items, list):
        raise DataLoadError(f"{path.name}: expected a '{key}' list")

    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as e:
        raise DataLoadError(f"{path.name}: invalid record: {e}") from e


def validate_references(data: ReferenceData) -> list[str]:
    """Cross-check ids between collections.

    Deals pointing at unknown records are fatal; zoning or event targets that
    name unknown ids only produce warnings.

    Returns:
        List of warning messages
    """
    warnings: list[str] = []
    product_ids = set(data.products_by_id)
    neighborhood_ids = {n.id for n in data.neighborhoods}

    for n in data.neighborhoods:
        unknown = [pid for pid in n.zoning if pid not in product_ids]
        if unknown:
            warnings.append(f"Neighborhood '{n.id}' zones unknown product types {unknown}")

    for event in data.events:
        if event.target_neighborhood and event.target_neighborhood not in neighborhood_ids:
            warnings.append(f"Event '{event.id}' targets unknown neighborhood '{event.target_neighborhood}'")

    for deal in data.deals:
        if deal.neighborhood not in neighborhood_ids:
            raise DataLoadError(f"Deal '{deal.id}' references unknown neighborhood '{deal.neighborhood}'")
        if deal.product_type not in product_ids:
            raise DataLoadError(f"Deal '{deal.id}' references unknown product type '{deal.product_type}'")

    for msg in warnings:
        log.warning("reference_data_warning", detail=msg)
    return warnings


def load_reference_data(data_dir: Optional[Path | str] = None) -> ReferenceData:
    """Load and validate all reference collections.

    Args:
        data_dir: Directory holding the JSON files; the bundled data by default

    Returns:
        ReferenceData instance

    Raises:
        DataLoadError: If a file is missing, malformed or inconsistent
    """
    base = Path(data_dir) if data_dir is not None else DEFAULT_DATA_DIR

    data = ReferenceData(
        neighborhoods=_read_collection(base / "neighborhoods.json", "neighborhoods", Neighborhood),
        product_types=_read_collection(base / "productTypes.json", "productTypes", ProductType),
        events=_read_collection(base / "events.json", "events", MarketEvent),
        deals=_read_collection(base / "deals.json", "deals", Deal),
    )
    if not data.neighborhoods or not data.product_types:
        raise DataLoadError(f"No neighborhoods or product types found in {base}")

    validate_references(data)
    log.info(
        "reference_data_loaded",
        path=str(base),
        neighborhoods=len(data.neighborhoods),
        product_types=len(data.product_types),
        events=len(data.events),
        deals=len(data.deals),
    )
    return data
