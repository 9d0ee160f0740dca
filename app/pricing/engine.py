"""
Flat-rate price book

Line total = (labor + marked-up materials) x quantity x tier x risk x safety mode,
rounded to the nearest dollar. The job total is raised to the configured minimum
when the line items come in under it.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from ..shared.numbering import round_half_up

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"

TIERS = ("basic", "standard", "premium")


class ServiceItemNotFound(LookupError):
    pass


@lru_cache(maxsize=None)
def _load(name: str):
    with open(DATA_DIR / name, encoding="utf-8") as f:
        return json.load(f)


def get_all_service_items() -> list[dict]:
    return _load("service_items.json")


def get_all_service_categories() -> list[dict]:
    return _load("service_categories.json")


def get_pricing_rules() -> dict:
    return _load("pricing_rules.json")


def get_material_prices() -> dict:
    return _load("material_prices.json")


def get_service_item(item_id: Union[int, str]) -> Optional[dict]:
    """Look up by numeric id, or by code for strings that are not all digits"""
    if isinstance(item_id, str) and item_id.isdigit():
        item_id = int(item_id)
    key = "id" if isinstance(item_id, int) else "code"
    return next((item for item in get_all_service_items() if item[key] == item_id), None)


def calculate_line_item(
    service: dict, material_cost: float = 0, quantity: float = 1, tier: str = "standard"
) -> dict:
    rules = get_pricing_rules()

    material_basis = material_cost or 0
    material_key = service.get("materialKey")
    if material_basis == 0 and material_key:
        material_basis = get_material_prices().get(material_key, 0)

    materials = (
        round_half_up(material_basis * (1 + rules["material_markup"])) if material_basis > 0 else 0
    )
    labor = service["standard_price"]

    line_total = (labor + materials) * quantity
    line_total *= rules["multipliers"][tier]
    line_total *= rules["risk_multipliers"][service.get("riskFactor") or "medium"]
    safety = rules["flat_rate_safety_mode"]
    line_total *= safety["multipliers"][safety["current"]]

    return {
        "serviceId": service["id"],
        "code": service["code"],
        "name": service["name"],
        "quantity": quantity,
        "tier": tier,
        "laborPortion": round_half_up(labor * quantity),
        "materialsPortion": materials,
        "lineTotal": round_half_up(line_total),
    }


def calculate_estimate(line_items: list[dict]) -> dict:
    """Price a list of {id, quantity?, materialCost?, tier?} inputs.

    Raises ServiceItemNotFound for ids or codes missing from the price book.
    """
    calculated = []
    for item in line_items:
        service = get_service_item(item["id"])
        if not service:
            raise ServiceItemNotFound(f"Service item not found: {item['id']}")
        calculated.append(
            calculate_line_item(
                service,
                material_cost=item.get("materialCost") or 0,
                quantity=item.get("quantity") or 1,
                tier=item.get("tier") or "standard",
            )
        )

    rules = get_pricing_rules()
    subtotal = sum(line["lineTotal"] for line in calculated)
    adjusted_total = subtotal
    applied_minimum = False
    if rules["defaults"]["apply_minimum_job_total"] and subtotal < rules["minimum_job_total"]:
        adjusted_total = rules["minimum_job_total"]
        applied_minimum = True

    return {
        "lineItems": calculated,
        "subtotal": subtotal,
        "adjustedTotal": adjusted_total,
        "appliedMinimum": applied_minimum,
    }
