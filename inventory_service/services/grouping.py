# inventory_service/services/grouping.py
import unicodedata
from typing import Iterable, List, Optional
from .. import schemas
from ..models import UnitStatus
from .classification import (
    group_key, is_serialized, normalize_status, record_matches, spec_value
)

# Estado de la unidad -> contador del grupo / estadística
STATUS_COUNTERS = {
    UnitStatus.AVAILABLE.value: "available",
    UnitStatus.RESERVED.value: "reserved",
    UnitStatus.SOLD.value: "sold",
    UnitStatus.IN_MAINTENANCE.value: "in_maintenance",
    UnitStatus.DEFECTIVE.value: "defective",
}

LOW_STOCK_LIMIT = 10

def _count_status(target, status: str):
    """Incrementa el contador del estado. Estados desconocidos no cuentan en ningún bucket."""
    counter = STATUS_COUNTERS.get(status)
    if counter:
        setattr(target, counter, getattr(target, counter) + 1)

def _new_group(key: str, record, serialized: bool) -> schemas.InventoryGroup:
    return schemas.InventoryGroup(
        product_key=key,
        name=record.name or "",
        sku=record.sku,
        category_id=record.category_id,
        brand=record.brand or "",
        model=record.model or "",
        color=spec_value(record, "color"),
        storage=spec_value(record, "storage"),
        ram=spec_value(record, "ram"),
        is_serialized=serialized,
        price_cost=record.price_cost or 0,
        price_retail=record.price_retail or 0,
        price_reseller=record.price_reseller or 0,
        price_wholesale=record.price_wholesale or 0,
        stock_quantity=None if serialized else (record.stock_quantity or 0),
        units=[] if serialized else None,
    )

def _name_key(name: str):
    # Orden sin acentos ni mayúsculas; el nombre crudo desempata
    folded = unicodedata.normalize("NFKD", name or "")
    folded = "".join(c for c in folded if not unicodedata.combining(c)).casefold()
    return (folded, name or "")

SORT_KEYS = {
    "name": lambda g: _name_key(g.name),
    "sku": lambda g: _name_key(g.sku or ""),
    "quantity": lambda g: g.total_units,
    "value": lambda g: g.stock_value,
}

def _is_available(group: schemas.InventoryGroup) -> bool:
    if group.is_serialized:
        return group.available > 0
    return (group.stock_quantity or 0) > 0

def compute_groups(
    records: Iterable,
    filters: Optional[schemas.InventoryFilters] = None
) -> List[schemas.InventoryGroup]:
    """
    Agrupa registros de producto para la tabla de inventario.

    Serializados se agrupan por brand|model|color|storage (las unidades con
    distinto IMEI colapsan en un mismo grupo); cada no serializado es su propio
    grupo. Los precios del grupo son los del primer registro visto.
    """
    filters = filters or schemas.InventoryFilters()
    groups = {}

    for record in records:
        if not record_matches(record, filters):
            continue

        serialized = is_serialized(record)
        key = group_key(record)

        # Un id a granel puede coincidir con una clave serializada
        group = groups.get((serialized, key))
        if group is None:
            group = _new_group(key, record, serialized)
            groups[(serialized, key)] = group

        status = normalize_status(record.unit_status)
        group.total_units += 1
        _count_status(group, status)

        if serialized:
            if status == UnitStatus.AVAILABLE.value:
                group.stock_value += record.price_cost or 0
            group.units.append(schemas.SerializedUnit(
                id=str(record.id),
                imei1=spec_value(record, "imei1"),
                imei2=spec_value(record, "imei2"),
                serial=spec_value(record, "serial"),
                unit_status=status,
                created_at=record.created_at,
                notes=spec_value(record, "notes"),
            ))
        else:
            group.stock_value = (record.stock_quantity or 0) * (record.price_cost or 0)

    result = list(groups.values())

    # Post-filtros
    if filters.only_serialized:
        result = [g for g in result if g.is_serialized]
    if filters.only_non_serialized:
        result = [g for g in result if not g.is_serialized]
    if filters.only_available:
        result = [g for g in result if _is_available(g)]

    # sorted() es estable y reverse=True conserva el orden de los empates
    result = sorted(
        result,
        key=SORT_KEYS[filters.sort_by],
        reverse=filters.sort_order == "desc",
    )
    return result

def filter_units(
    group: schemas.InventoryGroup,
    status: Optional[str] = None,
    search: Optional[str] = None
) -> List[schemas.SerializedUnit]:
    """Unidades de un grupo serializado filtradas por estado y por IMEI/serial."""
    units = group.units or []

    if status:
        wanted = normalize_status(status)
        units = [u for u in units if u.unit_status == wanted]

    if search:
        term = search.strip().lower()
        units = [
            u for u in units
            if any(term in (v or "").lower() for v in (u.imei1, u.imei2, u.serial))
        ]

    return units

def compute_stats(records: Iterable) -> schemas.InventoryStats:
    """
    Estadísticas del inventario en una sola pasada.

    El valor total solo suma el costo de las unidades serializadas disponibles
    (las vendidas o reservadas ya no son inventario vendible), mientras que en
    no serializados suma cantidad x costo.
    """
    stats = schemas.InventoryStats()
    serialized_keys = set()

    for record in records:
        stats.total_units += 1

        if is_serialized(record):
            serialized_keys.add(group_key(record))
            status = normalize_status(record.unit_status)
            _count_status(stats, status)
            if status == UnitStatus.AVAILABLE.value:
                stats.total_value += record.price_cost or 0
        else:
            stats.non_serialized_groups += 1
            if record.track_inventory is False:
                stats.not_tracked += 1

            qty = record.stock_quantity or 0
            if qty <= 0:
                stats.out_of_stock += 1
            elif qty <= LOW_STOCK_LIMIT:
                stats.low_stock += 1
            else:
                stats.in_stock += 1

            stats.total_value += qty * (record.price_cost or 0)

    stats.serialized_groups = len(serialized_keys)
    stats.total_products = stats.serialized_groups + stats.non_serialized_groups
    return stats
