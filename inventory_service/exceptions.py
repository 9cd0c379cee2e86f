class InventoryError(ValueError):
    """Error de precondición del inventario. El mensaje se muestra tal cual al usuario."""

class ProductNotFoundError(InventoryError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Producto no encontrado: {product_id}")

class NotTrackableError(InventoryError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"El producto {product_id} no controla inventario")

class NotSerializedError(InventoryError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"El producto {product_id} no es una unidad serializada")

class InvalidQuantityError(InventoryError):
    def __init__(self, quantity):
        self.quantity = quantity
        super().__init__(f"Cantidad inválida: {quantity!r} (debe ser un entero >= 0)")
