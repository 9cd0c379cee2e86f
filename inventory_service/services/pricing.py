# inventory_service/services/pricing.py
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from .. import crud, schemas
from ..crud import PRICE_FIELDS

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# --- UTILIDADES ---
def round_money(amount) -> Decimal:
    """Redondea un monto (en centavos) a 2 decimales, mitad hacia arriba."""
    return Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

def to_cents(amount: Decimal) -> int:
    """Las columnas de precio son enteras: centavos completos."""
    return int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def get_current_averages(products: Iterable) -> Tuple[int, Dict[str, Decimal]]:
    """
    Stock total y promedio ponderado por stock de cada precio.
    Sin productos (o sin stock) los promedios son cero.
    """
    products = list(products)
    total_stock = sum(p.stock_quantity or 0 for p in products)

    if total_stock <= 0:
        return 0, {field: ZERO for field in PRICE_FIELDS}

    averages = {}
    for field in PRICE_FIELDS:
        weighted = sum(
            Decimal(getattr(p, field) or 0) * (p.stock_quantity or 0)
            for p in products
        )
        averages[field] = round_money(weighted / total_stock)
    return total_stock, averages

def calculate_average_price(current_stock: int, current_price, new_quantity: int, new_price) -> schemas.AveragePriceResult:
    """
    Promedio ponderado:

        (stock_actual x precio_actual) + (cantidad_nueva x precio_nuevo)
        ----------------------------------------------------------------
                      stock_actual + cantidad_nueva

    Sin stock previo o sin precio de referencia, el promedio es el precio nuevo.
    """
    current_price = Decimal(current_price)
    new_price = Decimal(new_price)

    if current_stock == 0 or current_price == 0:
        return schemas.AveragePriceResult(
            average_price=round_money(new_price),
            total_quantity=new_quantity,
            price_change=ZERO,
            percentage_change=ZERO
        )

    total_value = (current_stock * current_price) + (new_quantity * new_price)
    total_quantity = current_stock + new_quantity
    average_price = round_money(total_value / total_quantity)

    price_change = average_price - current_price
    percentage_change = round_money(price_change / current_price * 100)

    return schemas.AveragePriceResult(
        average_price=average_price,
        total_quantity=total_quantity,
        price_change=price_change,
        percentage_change=percentage_change
    )

def calculate_all_average_prices(
    current_stock: int,
    current_prices: Dict[str, Decimal],
    new_quantity: int,
    new_prices: Dict[str, int]
) -> Dict[str, schemas.AveragePriceResult]:
    return {
        field: calculate_average_price(
            current_stock,
            current_prices[field],
            new_quantity,
            new_prices[field]
        )
        for field in PRICE_FIELDS
    }

def get_variation_key(entry: schemas.StockEntry) -> Optional[schemas.VariationKey]:
    """Clave de variación (modelo + RAM + almacenamiento). None si falta algún dato."""
    ram = str(entry.specs.get("ram") or "").strip()
    storage = str(entry.specs.get("storage") or "").strip()

    if not entry.model_id or not ram or not storage:
        return None
    return schemas.VariationKey(model_id=entry.model_id, ram=ram, storage=storage)

async def update_average_prices(
    db: AsyncSession,
    entry: schemas.StockEntry,
    tenant_id: int
) -> Optional[schemas.AveragePriceUpdate]:
    """
    Recalcula el precio promedio de la variación al recibir una entrada de stock
    y lo escribe en todos los productos activos de esa variación.

    Las filas de la variación se leen con bloqueo (SELECT ... FOR UPDATE) y la
    actualización se confirma en un solo commit, de modo que dos entradas
    simultáneas de la misma variación se aplican una después de la otra.
    No se reintenta: repetir la operación contaría dos veces la entrada.
    """
    variation = get_variation_key(entry)
    if variation is None:
        logger.info("⏭️ [PRICING] Sin datos de variación, se omite el precio promedio.")
        return None

    logger.info(f"🔍 [PRICING] Calculando promedio para {variation.model_dump()}")

    try:
        existing = await crud.get_products_by_variation(db, variation, tenant_id, for_update=True)
        total_stock, current_prices = get_current_averages(existing)

        # Entrada sin cantidad cuenta como 1 unidad
        entry_quantity = entry.stock_quantity or 1
        if not entry.stock_quantity:
            logger.warning("⚠️ [PRICING] Entrada sin cantidad, se pondera como 1 unidad.")

        new_prices = {field: getattr(entry, field) or 0 for field in PRICE_FIELDS}
        averages = calculate_all_average_prices(total_stock, current_prices, entry_quantity, new_prices)

        updated = 0
        if existing:
            stored_prices = {field: to_cents(averages[field].average_price) for field in PRICE_FIELDS}
            updated = await crud.update_prices(db, [p.id for p in existing], stored_prices, tenant_id)
            await db.commit()
            logger.info(f"✅ [PRICING] {updated} productos actualizados con el nuevo promedio.")
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ [PRICING] Error actualizando precios promedio: {e}")
        raise

    return schemas.AveragePriceUpdate(
        variation=variation,
        previous_stock=total_stock,
        new_stock=total_stock + entry_quantity,
        averages=averages,
        updated_products=updated
    )
