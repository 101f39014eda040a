import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session, joinedload

from .config import JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .errors import Forbidden, SubscriptionRequired
from .models import User
from .subscription_gate import has_active_subscription

logger = logging.getLogger(__name__)

security = HTTPBearer()


def decode_access_token(token: str) -> dict:
    """
    Verify an access token issued by the auth service.
    The ``sub`` claim carries the user's public id.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Expired access token presented")
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer access token"""

    if not credentials:
        logger.error("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = decode_access_token(token)
    public_id = claims.get("sub")
    if not public_id:
        logger.error(f"❌ Token missing subject claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = (
        db.query(User)
        .options(joinedload(User.provider_profile))
        .filter(User.public_id == public_id)
        .first()
    )
    if not user:
        logger.warning(f"⚠️ Token subject {public_id} does not match any user")
        raise HTTPException(status_code=401, detail="User not found")

    logger.debug(f"✅ User authenticated: {user.email} ({user.role})")
    return user


async def get_current_provider(user: User = Depends(get_current_user)) -> User:
    """Current user, restricted to doctors, hospitals and vendors"""
    if not user.is_provider:
        logger.warning(f"⚠️ {user.role} {user.id} attempted to access a provider route")
        raise Forbidden("Only providers can access this feature")
    return user


async def get_current_provider_with_subscription(
    user: User = Depends(get_current_provider),
) -> User:
    """
    Get current provider and verify they have an active subscription.
    Use this dependency for provider routes that require a paid subscription.
    """
    if not has_active_subscription(user):
        logger.warning(f"⚠️ Provider {user.id} attempted to access a gated route without a subscription")
        raise SubscriptionRequired(
            "Active subscription required to access this feature", requires_payment=True
        )
    return user
