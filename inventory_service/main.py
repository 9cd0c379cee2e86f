import logging
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .routers import inventory

# Configuración de Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("inventory-service")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:4200").split(",") if o.strip()]

app = FastAPI(
    title="Inventory Service",
    description="Inventario agrupado, ajustes de stock y precio promedio por variación.",
    version="1.0.0",
    root_path="/api/inventory"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(inventory.router)

@app.get("/health")
def health_check():
    """Health check para Docker."""
    return {"status": "ok"}
