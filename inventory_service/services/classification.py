# inventory_service/services/classification.py
"""
Clasificación de registros de producto.

Un registro es *serializado* si tiene al menos uno de IMEI1, IMEI2 o serial.
La clasificación se deriva siempre aquí; nunca se guarda como columna.
"""
from typing import Optional
from ..models import UnitStatus

SERIAL_FIELDS = ("imei1", "imei2", "serial")
SEARCH_FIELDS = ("name", "sku") + SERIAL_FIELDS

def spec_value(record, field: str) -> Optional[str]:
    """Lee un campo de `specs` tolerando specs ausente o malformado."""
    specs = getattr(record, "specs", None)
    if not isinstance(specs, dict):
        return None
    value = specs.get(field)
    if value is None:
        return None
    value = str(value).strip()
    return value or None

def is_serialized(record) -> bool:
    return any(spec_value(record, field) for field in SERIAL_FIELDS)

def normalize_status(value) -> str:
    """Sin estado -> 'available'. Estados desconocidos se devuelven tal cual."""
    if value is None or value == "":
        return UnitStatus.AVAILABLE.value
    if isinstance(value, UnitStatus):
        return value.value
    return str(value)

def group_key(record) -> str:
    """
    Clave determinística del grupo.

    Serializados: brand|model|color|storage sin partes vacías, en minúsculas.
    No serializados: el propio id (cada registro es su grupo).
    """
    if not is_serialized(record):
        return str(record.id)

    parts = [
        record.brand,
        record.model,
        spec_value(record, "color"),
        spec_value(record, "storage"),
    ]
    return "|".join(str(p) for p in parts if p).lower()

def searchable_values(record):
    for field in SEARCH_FIELDS:
        if field in SERIAL_FIELDS:
            value = spec_value(record, field)
        else:
            value = getattr(record, field, None)
        if value:
            yield str(value)

def record_matches(record, filters) -> bool:
    """Aplica en memoria los filtros a nivel de registro (search, categoría, marca, estado)."""
    if filters is None:
        return True

    if filters.search:
        term = filters.search.strip().lower()
        if term and not any(term in value.lower() for value in searchable_values(record)):
            return False

    if filters.category_id and record.category_id != filters.category_id:
        return False

    if filters.brand and (record.brand or "") != filters.brand:
        return False

    if filters.status is not None:
        if normalize_status(record.unit_status) != normalize_status(filters.status):
            return False

    return True
