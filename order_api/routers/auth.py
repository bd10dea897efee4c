"""Authentication router - signup, signin and current user.

Endpoints (mounted under /api/auth):
    POST /signup - Create a Firebase user and its profile document
    POST /signin - Exchange email/password for a Firebase ID token
    GET  /me     - Profile of the user owning the Bearer token

Passwords never touch this service's storage: Firebase Auth holds the
credentials, Firestore holds the profile.
"""

import os
import logging
from datetime import datetime, timezone
from typing import Dict, Any

import requests
from fastapi import APIRouter, Depends, HTTPException, Request
from firebase_admin import auth

from ..dependencies import (
    USERS_COLLECTION,
    get_firebase_app,
    get_firestore,
    verify_firebase_token,
)
from ..middleware.rate_limit import rate_limit_auth
from ..models import SignInRequest, SignUpRequest, UserInfo

router = APIRouter()
logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security")

FIREBASE_WEB_API_KEY = os.environ.get("FIREBASE_WEB_API_KEY")
SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
SIGN_IN_TIMEOUT_SECONDS = 10


@router.post("/signup", status_code=201)
@rate_limit_auth
async def sign_up(
    request: Request,
    payload: SignUpRequest,
    db=Depends(get_firestore),
) -> Dict[str, Any]:
    """Register a user with Firebase Auth and store their profile."""
    if not payload.name or not payload.email or not payload.password:
        raise HTTPException(400, "Please provide name, email and password")

    get_firebase_app()
    try:
        user = auth.create_user(
            email=payload.email,
            password=payload.password,
            display_name=payload.name,
        )
    except auth.EmailAlreadyExistsError:
        raise HTTPException(400, "User already exists")

    profile = {
        "name": payload.name,
        "email": payload.email,
        "role": "user",
        "createdAt": datetime.now(timezone.utc),
    }
    db.collection(USERS_COLLECTION).document(user.uid).set({"profile": profile})
    logger.info(f"User {user.uid} registered")

    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"uid": user.uid, "name": payload.name, "email": payload.email},
    }


@router.post("/signin")
@rate_limit_auth
async def sign_in(request: Request, payload: SignInRequest) -> Dict[str, Any]:
    """Sign in with email and password via the Firebase Auth REST API."""
    if not payload.email or not payload.password:
        raise HTTPException(400, "Please provide email and password")

    if not FIREBASE_WEB_API_KEY:
        logger.error("FIREBASE_WEB_API_KEY is not set; signin unavailable")
        raise HTTPException(500, "Sign-in is not configured")

    response = requests.post(
        f"{SIGN_IN_URL}?key={FIREBASE_WEB_API_KEY}",
        json={
            "email": payload.email.strip().lower(),
            "password": payload.password,
            "returnSecureToken": True,
        },
        timeout=SIGN_IN_TIMEOUT_SECONDS,
    )

    if response.status_code != 200:
        security_logger.warning({
            "event": "signin_failure",
            "ip": request.client.host if request.client else "unknown",
            "status": response.status_code,
        })
        raise HTTPException(401, "Invalid credentials")

    body = response.json()
    return {
        "success": True,
        "message": "User signed in successfully",
        "data": {
            "uid": body.get("localId"),
            "email": body.get("email"),
            "token": body.get("idToken"),
            "refreshToken": body.get("refreshToken"),
            "expiresIn": body.get("expiresIn"),
        },
    }


@router.get("/me")
async def get_me(
    decoded_token: dict = Depends(verify_firebase_token),
    db=Depends(get_firestore),
) -> Dict[str, Any]:
    """Return the signed-in user's profile."""
    uid = decoded_token['uid']
    user_doc = db.collection(USERS_COLLECTION).document(uid).get()

    # Token valid but no profile yet (user created outside signup)
    profile = (user_doc.to_dict() or {}).get('profile', {}) if user_doc.exists else {}

    user = UserInfo(
        uid=uid,
        email=decoded_token.get('email') or profile.get('email'),
        name=profile.get('name') or decoded_token.get('name'),
        role=profile.get('role'),
        createdAt=profile.get('createdAt'),
    )
    return {"success": True, "data": user}
