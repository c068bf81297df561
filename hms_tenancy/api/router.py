# hms_tenancy/api/router.py
from fastapi import APIRouter

from hms_tenancy.api import routes_clinical_notes, routes_medical_history

api_router = APIRouter()

# Tenant-scoped
api_router.include_router(routes_medical_history.router)

# Global
api_router.include_router(routes_clinical_notes.router)
