from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
import os

# Configuración Criptográfica
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "SECRET_SUPER_SECRETO_CAMBIAME")
ALGORITHM = "HS256"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

def decode_token(token: str):
    """Decodifica el token sin verificar rol aún."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

# --- PERMISOS ---
class Permissions:
    # INVENTARIO
    PRODUCT_READ = "product:read"
    PRODUCT_CREATE = "product:create"
    PRODUCT_UPDATE = "product:update"
    STOCK_ADJUST = "stock:adjust"
    REPORTS_VIEW = "reports:view"

ROLE_PERMISSIONS = {
    "OWNER": ["*"],
    "ADMIN": ["*"],

    "SALES_AGENT": [
        Permissions.PRODUCT_READ,
    ],
    "WAREHOUSE_CLERK": [
        Permissions.PRODUCT_READ,
        Permissions.PRODUCT_CREATE,
        Permissions.PRODUCT_UPDATE,
        Permissions.STOCK_ADJUST
    ],
    "WAREHOUSE_SUPERVISOR": [
        Permissions.PRODUCT_READ,
        Permissions.PRODUCT_UPDATE,
        Permissions.STOCK_ADJUST,
        Permissions.REPORTS_VIEW
    ],
}

# --- DEPENDENCIAS FASTAPI ---
class UserPayload:
    def __init__(self, sub: str, role: str, tenant_id: int, user_id):
        self.sub = sub
        self.role = role
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.permissions = ROLE_PERMISSIONS.get(role, [])

    def has_permission(self, required_perm: str) -> bool:
        if "*" in self.permissions: return True
        return required_perm in self.permissions

def get_current_user(token: str = Depends(oauth2_scheme)) -> UserPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Credenciales inválidas o expiradas",
        headers={"WWW-Authenticate": "Bearer"},
    )
    payload = decode_token(token)
    if payload is None or payload.get("type", "access") != "access":
        raise credentials_exception

    email: str = payload.get("sub")
    tenant_id: int = payload.get("tenant_id")
    if email is None or tenant_id is None:
        raise credentials_exception

    return UserPayload(
        sub=email,
        role=payload.get("role"),
        tenant_id=tenant_id,
        user_id=payload.get("user_id"),
    )

class RequirePermission:
    def __init__(self, permission: str):
        self.permission = permission

    def __call__(self, user: UserPayload = Depends(get_current_user)):
        if not user.has_permission(self.permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Acceso denegado. Requieres permiso: {self.permission}"
            )
        return user
