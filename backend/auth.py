# auth.py — Identity provider adapter for Shopfloor Tracker
# Features:
# - Verifies bearer tokens issued by the external identity provider (HS256 JWT)
# - Requires both a user and an active organisation in every session
# - Upserts the local user projection on first sign-in
# - Organisation admin vs member distinction from the org_role claim

import os
import uuid
import secrets
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from models import User

logger = logging.getLogger("shopfloor.auth")

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = os.getenv("IDENTITY_JWT_SECRET", "")
if not SECRET_KEY:
    SECRET_KEY = secrets.token_urlsafe(64)
    logger.warning(
        "IDENTITY_JWT_SECRET not set. Generated ephemeral key. "
        "Set IDENTITY_JWT_SECRET in production!"
    )

ALGORITHM = "HS256"
ISSUER = os.getenv("IDENTITY_JWT_ISSUER") or None
TOKEN_EXPIRE_MINUTES = int(os.getenv("IDENTITY_TOKEN_EXPIRE_MINUTES", "60"))

ORG_ADMIN_ROLE = "org:admin"
ORG_MEMBER_ROLE = "org:member"

security = HTTPBearer()


# ============================================================
# PYDANTIC SCHEMAS
# ============================================================

class CurrentUser(BaseModel):
    id: str
    external_id: str
    email: str
    name: Optional[str] = None
    organization_id: str
    org_role: str = ORG_MEMBER_ROLE

    @property
    def is_org_admin(self) -> bool:
        return self.org_role == ORG_ADMIN_ROLE


# ============================================================
# IDENTITY SERVICE
# ============================================================

class IdentityService:
    """Session verification against the identity provider's signing key"""

    @staticmethod
    def create_session_token(
        external_id: str,
        organization_id: Optional[str],
        email: str,
        name: Optional[str] = None,
        org_role: str = ORG_MEMBER_ROLE,
        image_url: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Mint a session token the way the identity provider does (tests, local dev)"""
        now = datetime.now(timezone.utc)
        claims: Dict[str, Any] = {
            "sub": external_id,
            "org_id": organization_id,
            "org_role": org_role,
            "email": email,
            "name": name,
            "image_url": image_url,
            "iat": now,
            "exp": now + (expires_delta or timedelta(minutes=TOKEN_EXPIRE_MINUTES)),
            "jti": str(uuid.uuid4()),
        }
        if ISSUER:
            claims["iss"] = ISSUER
        return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        options = {"verify_iss": ISSUER is not None}
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], issuer=ISSUER, options=options)
        except ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except JWTError:
            raise HTTPException(status_code=401, detail="Invalid token")

    @staticmethod
    def session_pair(payload: Dict[str, Any]) -> tuple:
        """Return (external user id, organisation id) or fail with Unauthorized"""
        external_id = payload.get("sub")
        org_id = payload.get("org_id")
        if not external_id or not org_id:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return external_id, org_id

    @staticmethod
    async def sync_user(payload: Dict[str, Any], db: AsyncSession) -> User:
        """Find the user projection for this identity, creating it on first sign-in"""
        external_id = payload["sub"]
        stmt = select(User).where(User.external_id == external_id)
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()
        if user:
            return user

        email = payload.get("email") or f"{external_id}@users.invalid"
        user = User(
            external_id=external_id,
            email=email,
            name=payload.get("name"),
            avatar_url=payload.get("image_url"),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Created user projection for identity {external_id}")
        return user


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    payload = IdentityService.verify_token(credentials.credentials)
    # Checked before any store access
    _, org_id = IdentityService.session_pair(payload)

    user = await IdentityService.sync_user(payload, db)

    return CurrentUser(
        id=user.id,
        external_id=user.external_id,
        email=user.email,
        name=user.name,
        organization_id=org_id,
        org_role=payload.get("org_role") or ORG_MEMBER_ROLE,
    )


async def require_org_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_org_admin:
        raise HTTPException(status_code=403, detail="Organization admin role required")
    return user
