"""
Validation and normalization of food listing submissions.

``build_listing`` turns raw submitted fields (multipart form values or
JSON-like values) into keyword arguments for ``Food``. Required fields are
checked in a fixed order and the first failure is reported on its own;
everything after that is collected into one itemized error.
"""
import math
import re
from typing import Any, Dict, List, Mapping, Optional

from starlette.datastructures import FormData, UploadFile

from .models.food import (
    DEFAULT_PRICE_RANGE,
    DIETARY_FLAGS,
    MAX_TAGS,
    NUTRITION_FIELDS,
    PRICE_RANGES,
)
from .responses import ValidationError


# (form field, column, message) in the order they are checked
REQUIRED_TEXT_FIELDS = (
    ("title", "title", "Title is required"),
    ("description", "description", "Description is required"),
    ("cuisineType", "cuisine_type", "Cuisine type is required"),
    ("vendorName", "vendor_name", "Vendor name is required"),
    ("address", "address", "Address is required"),
    ("city", "city", "City is required"),
)
PRICE_MESSAGE = "Valid price is required"
IMAGES_MESSAGE = "At least one image is required"

MAX_LENGTHS = {
    "title": ("Title", 120),
    "description": ("Description", 1000),
    "cuisine_type": ("Cuisine type", 60),
    "vendor_name": ("Vendor name", 100),
    "address": ("Address", 200),
    "city": ("City", 100),
}
MAX_TAG_LENGTH = 30

# Plain decimal notation only: no digit separators, hex or inf/nan words
DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def fields_from_form(form: FormData) -> Dict[str, Any]:
    """Collapse non-file form parts; repeated keys become lists."""
    fields: Dict[str, Any] = {}
    for key in form.keys():
        values = [v for v in form.getlist(key) if not isinstance(v, UploadFile)]
        if not values:
            continue
        fields[key] = values if len(values) > 1 else values[0]
    return fields


def _text(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    if value is None:
        return ""
    return str(value).strip()


def _number(value: Any) -> Optional[float]:
    text = _text(value)
    if not DECIMAL.fullmatch(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def parse_price(value: Any) -> Optional[float]:
    """A finite, non-negative number, or None."""
    if isinstance(value, bool):
        return None
    price = _number(value)
    if price is None or price < 0:
        return None
    return price


def normalize_tags(value: Any) -> List[str]:
    if isinstance(value, list):
        raw = [str(tag) for tag in value]
    elif isinstance(value, str) and value:
        raw = value.split(",")
    else:
        raw = []
    tags = [tag.strip() for tag in raw]
    return [tag for tag in tags if tag][:MAX_TAGS]


def parse_flag(value: Any) -> bool:
    return value is True or value == "true"


def normalize_price_range(value: Any) -> str:
    return value if value in PRICE_RANGES else DEFAULT_PRICE_RANGE


def parse_nutrition(fields: Mapping[str, Any], errors: List[str]) -> Dict[str, float]:
    """Pass through only the nutrition values that were provided."""
    nutrition = {}
    for name in NUTRITION_FIELDS:
        raw = fields.get(name)
        if raw is None or isinstance(raw, bool) or _text(raw) == "":
            continue
        number = _number(raw)
        if number is None:
            raise ValidationError(f"Invalid value for {name}")
        if number < 0:
            errors.append(f"{name.capitalize()} cannot be negative")
            continue
        nutrition[name] = number
    return nutrition


def build_listing(fields: Mapping[str, Any], image_count: int) -> Dict[str, Any]:
    """Validate a submission and return ``Food`` column values.

    ``images`` and ``created_by`` are left to the caller.
    """
    values: Dict[str, Any] = {}

    for field, column, message in REQUIRED_TEXT_FIELDS:
        text = _text(fields.get(field))
        if not text:
            raise ValidationError(message)
        values[column] = text

    price = parse_price(fields.get("price"))
    if price is None:
        raise ValidationError(PRICE_MESSAGE)
    values["price"] = price

    if image_count < 1:
        raise ValidationError(IMAGES_MESSAGE)

    errors: List[str] = []
    for column, (label, limit) in MAX_LENGTHS.items():
        if len(values[column]) > limit:
            errors.append(f"{label} cannot exceed {limit} characters")

    tags = normalize_tags(fields.get("tags"))
    if any(len(tag) > MAX_TAG_LENGTH for tag in tags):
        errors.append(f"Tags cannot exceed {MAX_TAG_LENGTH} characters")

    values["tags"] = tags
    values["price_range"] = normalize_price_range(fields.get("priceRange"))
    for flag in DIETARY_FLAGS:
        values[flag] = parse_flag(fields.get(flag))
    values.update(parse_nutrition(fields, errors))

    if errors:
        raise ValidationError("Validation failed", errors=errors)

    return values
