"""Authentication routes for CreditDesk (email verification)."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..auth import resend_verification_email, verify_email_token
from ..connectors.email_connector import EmailConnector
from ..dependencies import get_connector, get_database, get_user
from ..errors import AlreadyCompletedError, AuthenticationRequiredError, CreditDeskError
from ..persistence import Database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/resend-verification")
def resend_verification(
    user: Optional[Dict[str, Any]] = Depends(get_user),
    db: Database = Depends(get_database),
    connector: EmailConnector = Depends(get_connector),
):
    """
    Send a new verification link to the signed-in user.
    """
    if not user:
        raise AuthenticationRequiredError()
    if user["email_verified"]:
        raise AlreadyCompletedError("Email already verified")

    try:
        resend_verification_email(db, connector, user["id"], user["email"], user.get("name") or "there")
    except CreditDeskError as e:
        logger.error(f"Resend verification error: {e.message}")
        return JSONResponse({"error": e.message}, status_code=500)
    except (OSError, RuntimeError) as e:
        logger.error(f"Resend verification error: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to send verification email"}, status_code=500)

    return {"success": True}


@router.get("/verify-email")
def verify_email(token: str, db: Database = Depends(get_database)):
    user_id = verify_email_token(db, token)
    if not user_id:
        raise HTTPException(status_code=400, detail="Invalid or expired verification link")
    return {"success": True, "user_id": user_id}
