"""FastAPI dependencies for authentication, database connections, and shared resources.

Endpoints use these dependencies for:
- Firebase token verification
- Firestore client access
- Order service construction
"""

from __future__ import annotations

import os
import time
import logging
from pathlib import Path
from typing import Optional, Dict, Any

from fastapi import HTTPException, Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

import firebase_admin
from firebase_admin import auth, credentials, firestore

from .repository import OrderRepository
from .service import OrderService

# =============================================================================
# CONFIGURATION
# =============================================================================

PACKAGE_DIR = Path(__file__).parent
PROJECT_DIR = PACKAGE_DIR.parent

SERVICE_ACCOUNT_PATH = os.environ.get(
    "GOOGLE_APPLICATION_CREDENTIALS",
    str(PROJECT_DIR / "firebase-adminsdk.json")
)

# Security settings
MAX_TOKEN_AGE_SECONDS = int(os.environ.get("MAX_TOKEN_AGE_SECONDS", 3600))  # Default 1 hour
CLOCK_SKEW_SECONDS = int(os.environ.get("CLOCK_SKEW_SECONDS", 300))  # Default 5 min
SKIP_TOKEN_AGE_CHECK = os.environ.get("SKIP_TOKEN_AGE_CHECK", "").lower() in ("1", "true")

USERS_COLLECTION = os.environ.get("USERS_COLLECTION", "users")

logger = logging.getLogger("order_api.dependencies")
security_logger = logging.getLogger("security")

bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# FIREBASE INITIALIZATION
# =============================================================================

_firebase_app: Optional[firebase_admin.App] = None
_firestore_client = None


def get_firebase_app() -> firebase_admin.App:
    """Get or initialize Firebase Admin app."""
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    try:
        _firebase_app = firebase_admin.get_app()
        return _firebase_app
    except ValueError:
        pass

    if not Path(SERVICE_ACCOUNT_PATH).exists():
        raise RuntimeError(f"Service account not found: {SERVICE_ACCOUNT_PATH}")

    cred = credentials.Certificate(SERVICE_ACCOUNT_PATH)
    _firebase_app = firebase_admin.initialize_app(cred)
    logger.info("Firebase Admin initialized")
    return _firebase_app


def get_firestore():
    """Get Firestore client (singleton)."""
    global _firestore_client

    if _firestore_client is None:
        get_firebase_app()
        _firestore_client = firestore.client()
        logger.info("Firestore client initialized")

    return _firestore_client


def get_order_service(db=Depends(get_firestore)) -> OrderService:
    """Order service bound to the request's Firestore client."""
    return OrderService(OrderRepository(db))


# =============================================================================
# AUTHENTICATION
# =============================================================================

async def verify_firebase_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Dict[str, Any]:
    """Verify Firebase ID token from Authorization header.

    Security checks:
    - Valid signature
    - Not expired
    - Not revoked
    - Token age < MAX_TOKEN_AGE_SECONDS
    - Not from the future (beyond CLOCK_SKEW_SECONDS)

    Returns:
        Decoded token claims including 'uid'

    Raises:
        HTTPException 401 on any auth failure
    """
    if credentials is None:
        _log_auth_failure(request, "missing_auth_header")
        raise HTTPException(401, "Not authorized, no token")

    token = credentials.credentials

    try:
        get_firebase_app()
        decoded = auth.verify_id_token(token, check_revoked=True)
    except auth.RevokedIdTokenError:
        _log_auth_failure(request, "revoked_token")
        raise HTTPException(401, "Token has been revoked")
    except auth.ExpiredIdTokenError:
        _log_auth_failure(request, "expired_token")
        raise HTTPException(401, "Token has expired")
    except auth.InvalidIdTokenError as e:
        _log_auth_failure(request, "invalid_token", error=str(e))
        raise HTTPException(401, "Not authorized, token failed")
    except Exception as e:
        _log_auth_failure(request, "auth_error", error=str(e))
        raise HTTPException(401, "Authentication failed")

    if not SKIP_TOKEN_AGE_CHECK:
        now = time.time()
        issued_at = decoded.get('iat', 0)

        if now - issued_at > MAX_TOKEN_AGE_SECONDS:
            _log_auth_failure(request, "token_too_old", uid=decoded.get('uid'))
            raise HTTPException(401, "Token too old, please re-authenticate")

        if issued_at > now + CLOCK_SKEW_SECONDS:
            _log_auth_failure(request, "future_token", uid=decoded.get('uid'))
            raise HTTPException(401, "Invalid token timestamp")

    return decoded


def _log_auth_failure(request: Request, reason: str, **extra):
    """Log authentication failure for security monitoring."""
    security_logger.warning({
        "event": "auth_failure",
        "reason": reason,
        "ip": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent", "unknown"),
        "path": request.url.path,
        **extra
    })
