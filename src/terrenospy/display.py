"""Display helpers shared by the listing, detail and admin views.

Numbers follow Paraguayan conventions: "." groups thousands, "," marks
decimals, prices are in guaraníes ("Gs.").
"""

import math
from typing import Any, Optional
from urllib.parse import quote

from .models.property import PropertyRecord

PRICE_ON_REQUEST = "Consultar precio"
SIZE_UNKNOWN = "No especificado"
CURRENCY_PREFIX = "Gs."


def format_number(value: Any) -> str:
    """Format a number with es-PY grouping (1234567 -> "1.234.567")."""
    if isinstance(value, bool):
        return "0"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "0"
    if math.isnan(number) or math.isinf(number):
        return "0"

    if number.is_integer():
        text = f"{int(number):,}"
    else:
        text = f"{number:,.2f}".rstrip("0").rstrip(".")
    # swap en-US separators for es-PY ones
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_price(price: Any) -> str:
    """Format a listing price.

    Missing, zero or negative prices render as the price-on-request
    sentinel rather than "Gs. 0".
    """
    try:
        amount = float(price) if price is not None else 0.0
    except (TypeError, ValueError):
        return PRICE_ON_REQUEST
    if math.isnan(amount) or amount <= 0:
        return PRICE_ON_REQUEST
    return f"{CURRENCY_PREFIX} {format_number(amount)}"


def format_size(size: Any) -> str:
    """Format a plot size in square meters."""
    try:
        amount = float(size) if size is not None else 0.0
    except (TypeError, ValueError):
        return SIZE_UNKNOWN
    if math.isnan(amount) or amount <= 0:
        return SIZE_UNKNOWN
    return f"{format_number(amount)} m²"


def short_description(text: Optional[str], limit: int = 100) -> str:
    """Truncate a description for listing cards."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def map_embed_url(url: Optional[str]) -> Optional[str]:
    """Turn a Google Maps share link into an embeddable one.

    Example: "https://www.google.com/maps?q=-25.28,-57.63"
          -> "https://www.google.com/maps/embed?q=-25.28,-57.63"
    """
    if not url or not url.strip():
        return None
    url = url.strip()
    if "/maps?" in url and "/embed" not in url:
        return url.replace("/maps?", "/maps/embed?", 1)
    return url


def whatsapp_link(record: PropertyRecord, phone: str) -> str:
    """Build a wa.me link with a prefilled message about ``record``."""
    message = (
        f"Hola! Estoy interesado en el terreno: {record.title} "
        f"({record.location}). Precio: {format_price(record.price)}."
    )
    digits = "".join(c for c in phone if c.isdigit())
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def search_text(record: PropertyRecord) -> str:
    """Text a search term is matched against, already casefolded."""
    parts = [record.title, record.location, record.description, format_price(record.price)]
    return " ".join(p for p in parts if p).casefold()
