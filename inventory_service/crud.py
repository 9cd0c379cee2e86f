from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update, or_
from typing import Optional, List, Dict
from . import models, schemas
from .services.classification import record_matches

PRICE_FIELDS = ("price_cost", "price_retail", "price_reseller", "price_wholesale")

async def get_product_by_id(db: AsyncSession, product_id: str, tenant_id: int, for_update: bool = False):
    """Busca un producto por ID dentro de la empresa."""
    query = select(models.ProductRecord).filter(
        models.ProductRecord.id == product_id,
        models.ProductRecord.tenant_id == tenant_id
    )
    if for_update:
        # Con el bloqueo se releen los valores aunque la sesión ya tenga la fila
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalars().first()

async def get_inventory_records(
    db: AsyncSession,
    tenant_id: int,
    filters: Optional[schemas.InventoryFilters] = None
) -> List[models.ProductRecord]:
    """
    Registros del inventario de la empresa.

    Categoría, marca y estado se filtran en SQL; la búsqueda de texto (que
    incluye IMEI/serial dentro de `specs`) se resuelve en memoria.
    """
    conditions = [models.ProductRecord.tenant_id == tenant_id]

    if filters is not None:
        if filters.category_id:
            conditions.append(models.ProductRecord.category_id == filters.category_id)
        if filters.brand:
            conditions.append(models.ProductRecord.brand == filters.brand)
        if filters.status is not None:
            if filters.status == models.UnitStatus.AVAILABLE:
                # Sin estado equivale a disponible
                conditions.append(or_(
                    models.ProductRecord.unit_status == filters.status.value,
                    models.ProductRecord.unit_status.is_(None)
                ))
            else:
                conditions.append(models.ProductRecord.unit_status == filters.status.value)

    query = (
        select(models.ProductRecord)
        .filter(*conditions)
        .order_by(models.ProductRecord.created_at.asc(), models.ProductRecord.id.asc())
    )
    result = await db.execute(query)
    records = result.scalars().all()

    if filters is not None and filters.search:
        records = [r for r in records if record_matches(r, filters)]
    return list(records)

async def get_products_by_variation(
    db: AsyncSession,
    variation: schemas.VariationKey,
    tenant_id: int,
    for_update: bool = False
) -> List[models.ProductRecord]:
    """Productos activos de la misma variación (modelo + RAM + almacenamiento), sin importar el color."""
    specs = models.ProductRecord.specs
    query = select(models.ProductRecord).filter(
        models.ProductRecord.tenant_id == tenant_id,
        models.ProductRecord.model_id == variation.model_id,
        specs["ram"].as_string() == variation.ram,
        specs["storage"].as_string() == variation.storage,
        models.ProductRecord.status == models.ProductStatus.ACTIVE.value
    ).order_by(models.ProductRecord.id.asc())
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return list(result.scalars().all())

async def update_prices(db: AsyncSession, product_ids: List[str], prices: Dict[str, int], tenant_id: int):
    """Actualización en lote de los cuatro precios. No hace commit."""
    values = {field: prices[field] for field in PRICE_FIELDS}
    stmt = (
        update(models.ProductRecord)
        .where(
            models.ProductRecord.id.in_(product_ids),
            models.ProductRecord.tenant_id == tenant_id
        )
        .values(**values)
    )
    result = await db.execute(stmt)
    return result.rowcount

async def create_stock_movement(db: AsyncSession, movement: models.StockMovement):
    """Inserta el movimiento en la sesión actual. No hace commit."""
    db.add(movement)
    await db.flush()
    return movement

async def get_movements(db: AsyncSession, product_id: str, tenant_id: int, limit: int = 50):
    """Historial de movimientos de un producto, del más reciente al más antiguo."""
    query = (
        select(models.StockMovement)
        .filter(
            models.StockMovement.product_id == product_id,
            models.StockMovement.tenant_id == tenant_id
        )
        .order_by(models.StockMovement.created_at.desc(), models.StockMovement.id.desc())
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())

async def get_low_stock_products(db: AsyncSession, tenant_id: int, threshold: int = 10):
    """Productos con 0 < stock <= threshold, ordenados por cantidad ascendente."""
    query = (
        select(models.ProductRecord)
        .filter(
            models.ProductRecord.tenant_id == tenant_id,
            models.ProductRecord.stock_quantity > 0,
            models.ProductRecord.stock_quantity <= threshold
        )
        .order_by(models.ProductRecord.stock_quantity.asc(), models.ProductRecord.name.asc())
    )
    result = await db.execute(query)
    return list(result.scalars().all())

async def get_brands(db: AsyncSession, tenant_id: int) -> List[str]:
    """Marcas únicas del inventario, ordenadas."""
    query = (
        select(models.ProductRecord.brand)
        .filter(
            models.ProductRecord.tenant_id == tenant_id,
            models.ProductRecord.brand.is_not(None),
            models.ProductRecord.brand != ""
        )
        .distinct()
        .order_by(models.ProductRecord.brand.asc())
    )
    result = await db.execute(query)
    return [row[0] for row in result.all()]

async def get_inventory(
    db: AsyncSession,
    tenant_id: int,
    filters: Optional[schemas.InventoryFilters] = None
) -> List[models.ProductRecord]:
    """
    Lista plana (sin agrupar) del inventario.
    `only_available` exige stock > 0; orden por nombre, SKU, cantidad o valor.
    """
    filters = filters or schemas.InventoryFilters()
    records = await get_inventory_records(db, tenant_id, filters)

    if filters.only_available:
        records = [r for r in records if (r.stock_quantity or 0) > 0]

    sort_keys = {
        "name": lambda r: ((r.name or "").casefold(), r.name or ""),
        "sku": lambda r: ((r.sku or "").casefold(), r.sku or ""),
        "quantity": lambda r: r.stock_quantity or 0,
        "value": lambda r: (r.stock_quantity or 0) * (r.price_cost or 0),
    }
    return sorted(records, key=sort_keys[filters.sort_by], reverse=filters.sort_order == "desc")
