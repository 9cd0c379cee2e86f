import os
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Annotated, List, Optional
from .. import crud, schemas
from ..database import get_db
from ..exceptions import InventoryError, ProductNotFoundError
from ..models import UnitStatus
from ..services import grouping, pricing, stock
from mercado_common.security import RequirePermission, Permissions, UserPayload

LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))

router = APIRouter(prefix="/inventory", tags=["Inventory"])

def raise_http(error: InventoryError):
    """Traduce errores de precondición a respuestas HTTP con el mensaje tal cual."""
    if isinstance(error, ProductNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

# --- CONSULTAS ---

@router.get("/groups", response_model=List[schemas.InventoryGroup])
async def read_inventory_groups(
    filters: Annotated[schemas.InventoryFilters, Query()],
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_READ))
):
    """
    **Inventario Agrupado**

    Serializados (IMEI/serial) agrupados por marca + modelo + color + almacenamiento.
    Cada producto a granel es su propio grupo.
    """
    records = await crud.get_inventory_records(db, user.tenant_id, filters)
    return grouping.compute_groups(records, filters)

@router.get("/groups/{product_key}/units", response_model=List[schemas.SerializedUnit])
async def read_group_units(
    product_key: str,
    unit_status: Optional[UnitStatus] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_READ))
):
    """Unidades individuales de un grupo serializado."""
    records = await crud.get_inventory_records(db, user.tenant_id)
    groups = grouping.compute_groups(records, schemas.InventoryFilters(only_serialized=True))
    group = next((g for g in groups if g.product_key == product_key), None)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grupo no encontrado")
    return grouping.filter_units(group, status=unit_status, search=search)

@router.get("/stats", response_model=schemas.InventoryStats)
async def read_inventory_stats(
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_READ))
):
    """Estadísticas globales del inventario."""
    records = await crud.get_inventory_records(db, user.tenant_id)
    return grouping.compute_stats(records)

@router.get("/products", response_model=List[schemas.ProductResponse])
async def read_inventory_products(
    filters: Annotated[schemas.InventoryFilters, Query()],
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_READ))
):
    """Lista plana (sin agrupar) del inventario."""
    return await crud.get_inventory(db, user.tenant_id, filters)

@router.get("/low-stock", response_model=List[schemas.ProductResponse])
async def read_low_stock(
    threshold: int = Query(LOW_STOCK_THRESHOLD, ge=1),
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_READ))
):
    """Productos con stock bajo (0 < cantidad <= threshold)."""
    return await crud.get_low_stock_products(db, user.tenant_id, threshold)

@router.get("/brands", response_model=List[str])
async def read_brands(
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_READ))
):
    return await crud.get_brands(db, user.tenant_id)

@router.get("/products/{product_id}/movements", response_model=List[schemas.StockMovementResponse])
async def read_movements(
    product_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_READ))
):
    """Historial de movimientos de stock de un producto."""
    return await crud.get_movements(db, product_id, user.tenant_id, limit)

# --- MUTACIONES ---

@router.post("/adjustments", response_model=schemas.StockMovementResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_adjustment(
    adjustment: schemas.StockAdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.STOCK_ADJUST))
):
    """
    **Ajuste de Stock**

    - `in`: suma la cantidad.
    - `out`: resta la cantidad (nunca queda negativo).
    - `adjustment`: fija la cantidad absoluta.

    **Errores:**
    - `404 Not Found`: el producto no existe.
    - `400 Bad Request`: el producto no controla inventario.
    """
    try:
        return await stock.adjust_stock(db, adjustment, user.tenant_id, created_by=user.user_id or user.sub)
    except InventoryError as e:
        raise_http(e)

@router.patch("/units/{product_id}/status", response_model=schemas.ProductResponse)
async def change_unit_status(
    product_id: str,
    payload: schemas.UnitStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_UPDATE))
):
    """Cambia el estado de una unidad serializada."""
    try:
        return await stock.update_unit_status(db, product_id, user.tenant_id, payload.unit_status)
    except InventoryError as e:
        raise_http(e)

@router.post("/stock-entries/average-prices", response_model=Optional[schemas.AveragePriceUpdate])
async def apply_average_prices(
    entry: schemas.StockEntry,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.PRODUCT_UPDATE))
):
    """
    **Precio Promedio por Variación**

    Recalcula el promedio ponderado (modelo + RAM + almacenamiento) con la nueva
    entrada y lo aplica a todos los productos activos de la variación.
    Devuelve `null` si la entrada no tiene variación completa.
    """
    return await pricing.update_average_prices(db, entry, user.tenant_id)
