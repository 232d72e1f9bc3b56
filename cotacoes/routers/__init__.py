"""
FastAPI routers grouped by domain (system, auth, cotacoes).

Each module exposes an APIRouter included by the application factory.
"""
