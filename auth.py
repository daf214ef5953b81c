"""
Firebase Admin SDK identity for the dashboards.

Dashboards send the Firebase ID token as ``Authorization: Bearer <token>``.
The token's uid/email decide the role: admin emails come from config,
agents and references are looked up in their collections.
"""
import logging
import os
from typing import Optional

import firebase_admin
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions

from config import ADMIN_EMAILS, FIREBASE_CREDENTIALS
from repository import (
    ADMIN_SCOPE,
    RecruiterRepository,
    RepositoryError,
    Scope,
    get_recruiter_repository,
)

logger = logging.getLogger(__name__)

_app: Optional[firebase_admin.App] = None
_bearer = HTTPBearer(auto_error=False)


def initialize_firebase() -> Optional[firebase_admin.App]:
    """Initialize the Admin SDK once; None when credentials are not configured."""
    global _app
    if _app is not None:
        return _app

    if not FIREBASE_CREDENTIALS:
        logger.warning("FIREBASE_CREDENTIALS environment variable not set")
        return None
    if not os.path.exists(FIREBASE_CREDENTIALS):
        logger.error("Firebase credentials file not found at: %s", FIREBASE_CREDENTIALS)
        return None

    try:
        _app = firebase_admin.initialize_app(credentials.Certificate(FIREBASE_CREDENTIALS))
        logger.info("Firebase Admin SDK initialized successfully")
        return _app
    except (ValueError, IOError) as e:
        logger.error("Failed to initialize Firebase: %s", e)
        return None


def verify_token(id_token: str) -> Optional[dict]:
    if initialize_firebase() is None:
        raise HTTPException(status_code=503, detail="Identity provider not configured")
    try:
        return auth.verify_id_token(id_token)
    except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError) as e:
        logger.info("Rejected ID token: %s", e)
        return None
    except ValueError as e:
        logger.info("Malformed ID token: %s", e)
        return None
    except firebase_exceptions.FirebaseError as e:
        logger.error("Token verification unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Identity provider unavailable")


def create_login(email: str, password: str, display_name: str) -> str:
    """Create the identity provider account for a new agent; returns its uid."""
    if initialize_firebase() is None:
        raise HTTPException(status_code=503, detail="Identity provider not configured")
    try:
        user = auth.create_user(email=email, password=password, display_name=display_name)
    except auth.EmailAlreadyExistsError:
        raise HTTPException(status_code=409, detail="An account with this email already exists")
    except firebase_exceptions.FirebaseError as e:
        logger.error("Failed to create login for %s: %s", email, e)
        raise HTTPException(status_code=503, detail="Failed to create agent login")
    logger.info("Created login %s for %s", user.uid, email)
    return user.uid


def delete_login(uid: str) -> None:
    if not uid or initialize_firebase() is None:
        return
    try:
        auth.delete_user(uid)
    except auth.UserNotFoundError:
        logger.warning("Login %s already gone", uid)
    except firebase_exceptions.FirebaseError as e:
        logger.error("Failed to delete login %s: %s", uid, e)


def get_identity(creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> dict:
    if creds is None or creds.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Not authenticated")
    decoded = verify_token(creds.credentials)
    if not decoded or not decoded.get("uid"):
        raise HTTPException(status_code=401, detail="Invalid authentication token")
    return decoded


async def get_scope(
    identity: dict = Depends(get_identity),
    recruiters: RecruiterRepository = Depends(get_recruiter_repository),
) -> Scope:
    email = (identity.get("email") or "").lower()
    if email and email in ADMIN_EMAILS:
        return ADMIN_SCOPE
    try:
        scope = await recruiters.scope_for_uid(identity["uid"])
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError:
        logger.warning("Recruiter %s has no reference label", identity["uid"])
        scope = None
    if scope is None:
        raise HTTPException(status_code=403, detail="No dashboard access for this account")
    return scope


def require_admin(scope: Scope = Depends(get_scope)) -> Scope:
    if not scope.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return scope
