# mindspace/utils/security.py
from typing import Dict, Any, Optional

import jwt
from datetime import datetime, timezone
from mindspace.config import settings


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a token issued by the auth service.

    Raises jwt.PyJWTError (ExpiredSignatureError included) when invalid.
    """
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"verify_aud": False},
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode a JWT token without verifying expiration
    """
    # Set verify_exp=False to decode even if expired
    payload = jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"verify_exp": False, "verify_aud": False},
    )
    return payload


def get_token_user_id(payload: Dict[str, Any]) -> Optional[str]:
    """Authenticated user id carried by a decoded token"""
    user_id = payload.get("sub")
    return str(user_id) if user_id else None


def is_token_expired(token: str) -> bool:
    """
    Check if a token is expired
    """
    try:
        payload = decode_token(token)
        expiration = datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc)
        return datetime.now(timezone.utc) > expiration
    except jwt.PyJWTError:
        return True
