from fastapi import APIRouter
from app.api.v1.endpoints import messages, zones, attendance, maintenance

api_router = APIRouter()

# Register routes
api_router.include_router(messages.router, prefix="/messages", tags=["Messages"])
api_router.include_router(zones.router, prefix="/zones", tags=["Zones"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["Maintenance"])
