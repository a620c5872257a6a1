"""
Flatten orders into export rows and render them as CSV, JSON or Excel
"""
import csv
import io
import json
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Tuple, Union

from openpyxl import Workbook

from storehouse.exceptions import ValidationError
from storehouse.models.order import Order
from storehouse.schemas.order import OrderExportRow

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

EXPORT_EXTENSIONS = {
    "csv": "csv",
    "json": "json",
    "excel": "xlsx",
}

UNKNOWN_PRODUCT = "Unknown Product"


def normalize_format(export_format: str) -> str:
    fmt = (export_format or "").strip().lower()
    if fmt not in EXPORT_MEDIA_TYPES:
        raise ValidationError(
            f"Unsupported export format '{export_format}'. Use one of: {', '.join(EXPORT_MEDIA_TYPES)}"
        )
    return fmt


def flatten_orders(orders: Iterable[Order], user_names: Dict[str, str]) -> List[OrderExportRow]:
    """One row per order item; an order without items still yields one row"""
    rows = []
    for order in orders:
        base = dict(
            order_id=order.id,
            order_status=order.status,
            order_created=order.created_at,
            order_total_price=order.total_price,
            user_id=order.user_id,
            user_name=user_names.get(order.user_id),
            client_name=order.client_name,
            client_phone_number=order.client_phone_number,
            shipping_address_street=order.shipping_address_street,
            shipping_address_city=order.shipping_address_city,
            shipping_address_postal_code=order.shipping_address_postal_code,
            shipping_address_country=order.shipping_address_country,
        )
        if not order.items:
            rows.append(OrderExportRow(**base))
            continue
        for item in order.items:
            rows.append(OrderExportRow(
                **base,
                order_item_id=item.id,
                product_id=item.product_id,
                product_name=item.product_name or UNKNOWN_PRODUCT,
                item_quantity=item.quantity,
                item_price=item.unit_price,
                item_total=item.total_price,
            ))
    return rows


def _cell(value):
    # xlsx cells cannot hold timezone-aware datetimes
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def render(rows: List[OrderExportRow], export_format: str) -> Tuple[Union[str, bytes], str]:
    """
    Serialize export rows
    
    Returns:
        (content, media type); excel content is xlsx bytes
    """
    fmt = normalize_format(export_format)
    fieldnames = list(OrderExportRow.model_fields)
    
    if fmt == "excel":
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Orders"
        sheet.append(fieldnames)
        for row in rows:
            sheet.append([_cell(getattr(row, field)) for field in fieldnames])
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue(), EXPORT_MEDIA_TYPES[fmt]
    
    records = [row.model_dump(mode="json") for row in rows]
    
    if fmt == "json":
        return json.dumps(records, indent=2), EXPORT_MEDIA_TYPES[fmt]
    
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    writer.writerows(records)
    return buffer.getvalue(), EXPORT_MEDIA_TYPES[fmt]


def export_filename(stem: str, export_format: str, now: datetime) -> str:
    """Download name such as orders_detailed_20260310142500.xlsx"""
    fmt = normalize_format(export_format)
    return f"{stem}_{now:%Y%m%d%H%M%S}.{EXPORT_EXTENSIONS[fmt]}"
