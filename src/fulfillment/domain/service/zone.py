"""Domain service: delivery zone classification.

Indian pincodes are hierarchical: the first digit is the postal region and
the first three digits the sorting district.  Comparing a warehouse's
pincode to the customer's therefore gives a cheap distance estimate:

    Zone 1  same sorting district   (first 3 characters equal)
    Zone 2  same postal region      (first character equal)
    Zone 3  anything else, or either pincode missing
"""

from __future__ import annotations

from enum import IntEnum


class Zone(IntEnum):
    LOCAL = 1
    REGIONAL = 2
    NATIONAL = 3


def classify_zone(warehouse_pincode: str | None, customer_pincode: str | None) -> Zone:
    warehouse = (warehouse_pincode or "").strip()
    customer = (customer_pincode or "").strip()
    if not warehouse or not customer:
        return Zone.NATIONAL
    if warehouse[:3] == customer[:3]:
        return Zone.LOCAL
    if warehouse[:1] == customer[:1]:
        return Zone.REGIONAL
    return Zone.NATIONAL
