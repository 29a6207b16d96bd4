"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import billing, tenants

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(billing.router, prefix="/billing", tags=["Billing"])
api_router.include_router(tenants.router, prefix="/billing/tenants", tags=["Tenant Pricing"])
