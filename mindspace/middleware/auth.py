from typing import Optional, Callable, Dict
from jwt.exceptions import PyJWTError, ExpiredSignatureError
import logging
from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
import aiohttp

from mindspace.config import settings
from mindspace.utils.security import decode_access_token, get_token_user_id, is_token_expired

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Resolve the caller's identity from a bearer JWT issued by the external auth
    service, renewing an expired access token through the service's refresh
    endpoint when a refresh cookie is present.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip auth for OPTIONS requests and public endpoints
        if request.method == "OPTIONS" or self._is_public_endpoint(request.url.path):
            return await call_next(request)

        access_token = self._get_token_from_header(request)
        refresh_token = self._get_refresh_token_from_cookie(request)

        # Initialize request state
        request.state.user_id = None
        request.state.token_renewed = False

        if access_token:
            try:
                payload = decode_access_token(access_token)
                request.state.user_id = get_token_user_id(payload)

            except ExpiredSignatureError:
                # Token is expired but valid, try to renew it if we have a refresh token
                logger.info("Access token expired, attempting renewal")
                if refresh_token:
                    new_tokens = await self._renew_token(refresh_token)
                    if new_tokens:
                        logger.info("Successfully renewed access token")
                        try:
                            new_payload = decode_access_token(new_tokens["access_token"])
                            request.state.user_id = get_token_user_id(new_payload)
                            request.state.token_renewed = True
                            request.state.new_tokens = new_tokens
                        except (PyJWTError, KeyError) as e:
                            logger.error(f"Error decoding new token: {e}")
                    else:
                        logger.warning("Token renewal failed")
                else:
                    logger.warning("Access token expired and no refresh token provided")

            except PyJWTError as e:
                logger.warning(f"Invalid authentication token: {e}")

        # Process the request
        response = await call_next(request)

        # If token was renewed, update the response with new tokens
        if getattr(request.state, "token_renewed", False) and hasattr(request.state, "new_tokens"):
            response.headers["X-New-Access-Token"] = request.state.new_tokens["access_token"]

            if "refresh_token" in request.state.new_tokens:
                max_age = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
                response.set_cookie(
                    key="refresh_token",
                    value=request.state.new_tokens["refresh_token"],
                    httponly=True,
                    secure=not settings.DEBUG,  # Secure in production
                    samesite="lax",
                    max_age=max_age
                )

        return response

    def _get_token_from_header(self, request: Request) -> Optional[str]:
        """Extract token from the Authorization header"""
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return None

        return auth_header.split(" ")[1]

    def _get_refresh_token_from_cookie(self, request: Request) -> Optional[str]:
        """Extract refresh token from cookies"""
        return request.cookies.get("refresh_token")

    async def _renew_token(self, refresh_token: str) -> Optional[Dict[str, str]]:
        """Attempt to renew an access token using a refresh token"""
        # Check if refresh token is valid before making the request
        if is_token_expired(refresh_token):
            logger.warning("Refresh token is expired, renewal skipped")
            return None

        try:
            async with aiohttp.ClientSession() as session:
                headers = {"Content-Type": "application/json"}
                data = {"refresh_token": refresh_token}

                async with session.post(settings.AUTH_REFRESH_URL, headers=headers, json=data) as response:
                    if response.status == 200:
                        return await response.json()
                    logger.warning(f"Token refresh failed with status {response.status}")
                    return None

        except aiohttp.ClientError as e:
            logger.error(f"Error during token renewal: {e}")
            return None

    def _is_public_endpoint(self, path: str) -> bool:
        """Check if the endpoint is public (no auth required)"""
        public_paths = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/healthcheck",
        ]

        for public_path in public_paths:
            if path.startswith(public_path):
                return True

        return False


def get_current_user_id(request: Request) -> str:
    """Dependency to enforce authentication on routes"""
    if getattr(request.state, "user_id", None) is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return request.state.user_id
