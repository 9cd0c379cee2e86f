import enum
import uuid
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func
from .database import Base

def generate_uuid() -> str:
    return str(uuid.uuid4())

class UnitStatus(str, enum.Enum):
    AVAILABLE = "available"         # Disponible para venta
    RESERVED = "reserved"           # Reservado para un cliente
    SOLD = "sold"                   # Vendido
    IN_MAINTENANCE = "maintenance"  # En mantenimiento
    DEFECTIVE = "defective"         # Defectuoso

class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    OUT_OF_STOCK = "out_of_stock"
    DISCONTINUED = "discontinued"

class MovementType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"   # Fija la cantidad absoluta

class MovementReason(str, enum.Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    LOSS = "loss"
    DONATION = "donation"
    RETURN = "return"
    INVENTORY = "inventory"     # Conteo / ajuste manual
    TRANSFER = "transfer"

class ProductRecord(Base):
    """
    Registro atómico de inventario.

    Cada fila es un producto a granel (controlado por `stock_quantity`) o una
    unidad física de un producto serializado (IMEI / número de serie).

    Attributes:
        specs: Atributos flexibles por categoría (color, storage, ram, imei1,
            imei2, serial, notes...).
        unit_status: Estado de la unidad; solo tiene sentido en serializados.
        price_*: Precios en centavos (enteros). Nunca en float.
    """
    __tablename__ = "products"

    id = Column(String, primary_key=True, default=generate_uuid)
    tenant_id = Column(Integer, index=True, nullable=False)
    name = Column(String, index=True, nullable=False)
    sku = Column(String, index=True, nullable=True)

    model_id = Column(String, index=True, nullable=True)
    category_id = Column(String, index=True, nullable=True)
    brand = Column(String, index=True, nullable=True)
    model = Column(String, nullable=True)

    specs = Column(JSON, nullable=True, default=dict)

    status = Column(String, index=True, default=ProductStatus.ACTIVE.value)
    unit_status = Column(String, nullable=True, default=UnitStatus.AVAILABLE.value)

    track_inventory = Column(Boolean, default=True)
    stock_quantity = Column(Integer, default=0)

    price_cost = Column(Integer, nullable=False, default=0)
    price_retail = Column(Integer, nullable=False, default=0)
    price_reseller = Column(Integer, nullable=False, default=0)
    price_wholesale = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class StockMovement(Base):
    """
    Registro inmutable (solo inserción) de un cambio de cantidad de un producto
    no serializado. Forma el libro de auditoría del stock.
    """
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, index=True, nullable=False)
    product_id = Column(String, ForeignKey("products.id"), index=True, nullable=False)

    type = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)

    reason = Column(String, nullable=False)
    notes = Column(String, nullable=True)
    reference_id = Column(String, nullable=True) # ID de la venta/compra relacionada

    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
