# inventory_service/services/stock.py
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from .. import crud, models, schemas
from ..exceptions import (
    InvalidQuantityError, NotSerializedError, NotTrackableError, ProductNotFoundError
)
from .classification import is_serialized

logger = logging.getLogger(__name__)

def validate_quantity(quantity) -> int:
    # bool es subclase de int: se rechaza explícitamente
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantityError(quantity)
    return quantity

def calculate_new_quantity(movement_type, previous: int, quantity: int) -> int:
    """
    in: suma, out: resta sin bajar de cero, adjustment: fija el valor absoluto.
    """
    movement_type = models.MovementType(movement_type)
    if movement_type == models.MovementType.IN:
        return previous + quantity
    if movement_type == models.MovementType.OUT:
        return max(0, previous - quantity)
    return quantity

async def adjust_stock(
    db: AsyncSession,
    adjustment: schemas.StockAdjustmentCreate,
    tenant_id: int,
    created_by: Optional[str] = None
) -> models.StockMovement:
    """
    Ajusta la cantidad de un producto no serializado y registra el movimiento.

    La actualización de la cantidad y el registro de auditoría se confirman en
    una única transacción: si cualquiera falla, ambos se revierten y la
    cantidad vuelve a su valor anterior.

    Raises:
        InvalidQuantityError: cantidad no entera o negativa.
        ProductNotFoundError: el producto no existe en la empresa.
        NotTrackableError: el producto no controla inventario.
    """
    quantity = validate_quantity(adjustment.quantity)

    product = await crud.get_product_by_id(db, adjustment.product_id, tenant_id, for_update=True)
    if product is None:
        raise ProductNotFoundError(adjustment.product_id)
    if not product.track_inventory:
        raise NotTrackableError(adjustment.product_id)

    previous_quantity = product.stock_quantity or 0
    new_quantity = calculate_new_quantity(adjustment.type, previous_quantity, quantity)

    try:
        product.stock_quantity = new_quantity

        movement = models.StockMovement(
            tenant_id=tenant_id,
            product_id=product.id,
            type=models.MovementType(adjustment.type).value,
            quantity=quantity,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reason=models.MovementReason(adjustment.reason).value,
            notes=adjustment.notes,
            reference_id=adjustment.reference_id,
            created_by=str(created_by) if created_by is not None else None
        )
        await crud.create_stock_movement(db, movement)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ [STOCK] Error ajustando stock de {adjustment.product_id}: {e}")
        raise

    await db.refresh(movement)
    logger.info(
        f"📦 [STOCK] {product.id}: {previous_quantity} -> {new_quantity} "
        f"({movement.type}/{movement.reason})"
    )
    return movement

async def update_unit_status(
    db: AsyncSession,
    product_id: str,
    tenant_id: int,
    unit_status: models.UnitStatus
) -> models.ProductRecord:
    """Transición de estado de una unidad serializada (vendida, devuelta, en mantenimiento...)."""
    product = await crud.get_product_by_id(db, product_id, tenant_id, for_update=True)
    if product is None:
        raise ProductNotFoundError(product_id)
    if not is_serialized(product):
        raise NotSerializedError(product_id)

    previous = product.unit_status
    product.unit_status = models.UnitStatus(unit_status).value
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(product)
    logger.info(f"🔁 [STOCK] Unidad {product_id}: {previous} -> {product.unit_status}")
    return product
