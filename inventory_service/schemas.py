from pydantic import BaseModel, ConfigDict, Field, model_validator
from decimal import Decimal
from datetime import datetime
from typing import Optional, List, Dict, Any, Literal
from .models import UnitStatus, MovementType, MovementReason

# --- FILTROS ---

class InventoryFilters(BaseModel):
    """Filtros del inventario. Todos opcionales: ausencia = sin filtro en esa dimensión."""
    search: Optional[str] = Field(None, description="Busca en nombre, SKU, IMEI1, IMEI2 y serial")
    category_id: Optional[str] = None
    brand: Optional[str] = None
    status: Optional[UnitStatus] = Field(None, description="Estado de la unidad")
    only_available: bool = False
    only_serialized: bool = False
    only_non_serialized: bool = False
    sort_by: Literal["name", "sku", "quantity", "value"] = "name"
    sort_order: Literal["asc", "desc"] = "asc"

    @model_validator(mode="after")
    def check_serialized_toggle(self):
        if self.only_serialized and self.only_non_serialized:
            raise ValueError("only_serialized y only_non_serialized son excluyentes")
        return self

# --- AGRUPACIÓN ---

class SerializedUnit(BaseModel):
    """Proyección de una unidad física dentro de un grupo serializado."""
    id: str
    imei1: Optional[str] = None
    imei2: Optional[str] = None
    serial: Optional[str] = None
    unit_status: str
    created_at: Optional[datetime] = None
    notes: Optional[str] = None

class InventoryGroup(BaseModel):
    """Agregado derivado (no persistido) de registros con la misma clave de grupo."""
    product_key: str
    name: str
    sku: Optional[str] = None
    category_id: Optional[str] = None

    brand: str = ""
    model: str = ""
    color: Optional[str] = None
    storage: Optional[str] = None
    ram: Optional[str] = None

    # Contadores
    total_units: int = 0
    available: int = 0
    reserved: int = 0
    sold: int = 0
    in_maintenance: int = 0
    defective: int = 0

    is_serialized: bool

    # Precios del registro representativo (no promediados aquí)
    price_cost: int = 0
    price_retail: int = 0
    price_reseller: int = 0
    price_wholesale: int = 0

    stock_quantity: Optional[int] = Field(None, description="Solo grupos no serializados")
    stock_value: int = Field(0, description="Valor en centavos usado por el orden 'value'")

    units: Optional[List[SerializedUnit]] = None

class InventoryStats(BaseModel):
    # Totales
    total_products: int = 0     # Grupos
    total_units: int = 0        # Registros individuales

    # Por tipo
    serialized_groups: int = 0
    non_serialized_groups: int = 0

    # Por estado (solo serializados)
    available: int = 0
    reserved: int = 0
    sold: int = 0
    in_maintenance: int = 0
    defective: int = 0

    # No serializados
    in_stock: int = 0           # qty > 10
    low_stock: int = 0          # 1 <= qty <= 10
    out_of_stock: int = 0       # qty = 0
    not_tracked: int = 0        # track_inventory = False

    total_value: int = 0        # Centavos

# --- PRODUCTOS ---

class ProductResponse(BaseModel):
    id: str
    name: str
    sku: Optional[str] = None
    model_id: Optional[str] = None
    category_id: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specs: Optional[Dict[str, Any]] = None
    status: Optional[str] = None
    unit_status: Optional[str] = None
    track_inventory: Optional[bool] = None
    stock_quantity: Optional[int] = None
    price_cost: int
    price_retail: int
    price_reseller: int
    price_wholesale: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

class UnitStatusUpdate(BaseModel):
    unit_status: UnitStatus

# --- MOVIMIENTOS DE STOCK ---

class StockAdjustmentCreate(BaseModel):
    product_id: str
    type: MovementType
    quantity: int = Field(..., ge=0, description="Delta para in/out, valor absoluto para adjustment")
    reason: MovementReason
    notes: Optional[str] = None
    reference_id: Optional[str] = None

class StockMovementResponse(BaseModel):
    id: int
    product_id: str
    type: str
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str
    notes: Optional[str] = None
    reference_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# --- PRECIO PROMEDIO ---

class StockEntry(BaseModel):
    """Entrada de stock que alimenta el cálculo de precio promedio."""
    model_config = ConfigDict(protected_namespaces=())

    model_id: Optional[str] = None
    specs: Dict[str, Any] = Field(default_factory=dict)
    stock_quantity: Optional[int] = Field(None, ge=0)
    price_cost: int = Field(0, ge=0)
    price_retail: int = Field(0, ge=0)
    price_reseller: int = Field(0, ge=0)
    price_wholesale: int = Field(0, ge=0)

class VariationKey(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    ram: str
    storage: str

class AveragePriceResult(BaseModel):
    average_price: Decimal
    total_quantity: int
    price_change: Decimal
    percentage_change: Decimal

class AveragePriceUpdate(BaseModel):
    variation: VariationKey
    previous_stock: int
    new_stock: int
    averages: Dict[str, AveragePriceResult]
    updated_products: int = 0
