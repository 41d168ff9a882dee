"""
Merge rules for records that exist in two store tiers or arrive as deltas.

Two distinct operations live here:

- merge_by_key: combine a primary-store listing with a volatile-store listing.
  The primary record always wins for a shared merge key, even if the volatile
  copy is newer; volatile records only fill gaps.
- merge_cart_items: fold incoming cart line items into an existing cart.
  Quantities for a shared key are summed (a fold over deltas, not a set union),
  so submitting the same delta twice counts it twice.
"""
import json
from collections.abc import Callable, Iterable
from typing import Any

from db.stores import EntityKind, Record
from services.exceptions import MalformedInputError

MergeKey = Callable[[Record], str | None]

QUANTITY_FIELDS = ("quantity", "qty")
CART_ITEM_KEY_FIELDS = ("id", "product_id", "productId")


def normalize_email(email: Any) -> str:
    """Lower-case and trim an email for use as a business key."""
    return str(email).strip().lower()


def user_merge_key(record: Record) -> str | None:
    """Users merge on normalized email."""
    email = record.get("email")
    if not email:
        return None
    return normalize_email(email)


def id_merge_key(record: Record) -> str | None:
    """Records merge on their id."""
    record_id = record.get("id")
    return str(record_id) if record_id is not None else None


# Kinds whose reads combine both tiers, and the key each merges on
MERGE_KEYS: dict[EntityKind, MergeKey] = {
    EntityKind.USER: user_merge_key,
    EntityKind.PRODUCT: id_merge_key,
    EntityKind.DISCOUNT: id_merge_key,
    EntityKind.SECTION: id_merge_key,
}


def merge_by_key(
    primary: Iterable[Record],
    secondary: Iterable[Record],
    key: MergeKey,
) -> list[Record]:
    """
    Combine two listings, keeping the primary record for every shared key.

    Records without a key cannot be deduplicated and are kept as-is. Within the
    primary listing the first record for a key wins.
    """
    merged: list[Record] = []
    seen: set[str] = set()
    for source in (primary, secondary):
        for record in source:
            record_key = key(record)
            if record_key is None:
                merged.append(record)
                continue
            if record_key in seen:
                continue
            seen.add(record_key)
            merged.append(record)
    return merged


def cart_item_key(item: Record) -> str:
    """Item id, else product id, else the item's canonical JSON."""
    for field in CART_ITEM_KEY_FIELDS:
        value = item.get(field)
        if value is not None:
            return str(value)
    return json.dumps(item, sort_keys=True, separators=(",", ":"), default=str)


def item_quantity(item: Record) -> int:
    """
    Quantity of a line item; a missing quantity counts as 1.

    Raises:
        MalformedInputError: If the quantity is not a whole number.
    """
    for field in QUANTITY_FIELDS:
        value = item.get(field)
        if value is None:
            continue
        if isinstance(value, bool):
            raise MalformedInputError(f"Invalid cart item {field}: {value!r}")
        try:
            quantity = int(value)
        except (TypeError, ValueError) as e:
            raise MalformedInputError(f"Invalid cart item {field}: {value!r}") from e
        if quantity != value and str(quantity) != str(value).strip():
            raise MalformedInputError(f"Invalid cart item {field}: {value!r}")
        return quantity
    return 1


def merge_cart_items(existing: Iterable[Any], incoming: Iterable[Any]) -> list[Record]:
    """
    Fold incoming line items into existing ones.

    For a key already present, the merged item is the incoming item overlaid on the
    previous one, with quantity = previous + incoming. New keys are appended
    verbatim. Non-dict entries are ignored. Existing order is preserved.
    """
    by_key: dict[str, Record] = {}
    for item in existing:
        if isinstance(item, dict):
            by_key[cart_item_key(item)] = dict(item)

    for item in incoming:
        if not isinstance(item, dict):
            continue
        key = cart_item_key(item)
        previous = by_key.get(key)
        if previous is None:
            by_key[key] = dict(item)
            continue
        total = item_quantity(previous) + item_quantity(item)
        merged = {**previous, **item}
        quantity_fields = [f for f in QUANTITY_FIELDS if f in merged] or ["quantity"]
        for field in quantity_fields:
            merged[field] = total
        by_key[key] = merged

    return list(by_key.values())
