from .admin import router as admin_router
from .appointments import router as appointments_router
from .clinics import router as clinics_router
from .content import router as content_router
from .info import router as info_router

ALL_ROUTERS = (
    clinics_router,
    content_router,
    info_router,
    appointments_router,
    admin_router,
)
