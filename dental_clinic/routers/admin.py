from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..auth_service import authenticate
from ..db import Database
from ..deps import get_database
from ..schemas import AdminLoginIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post("/login")
def api_admin_login(payload: AdminLoginIn, db: Database = Depends(get_database)):
    """Verifica le credenziali. Non viene emesso alcun token: il pannello tiene lo stato lato client."""
    if authenticate(db, payload.username, payload.password):
        return {"success": True}

    logger.info("Login admin fallito per '%s'", payload.username)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "error": "Credenziali non valide."},
    )
