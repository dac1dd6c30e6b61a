# mindspace/websockets/auth.py
from fastapi import WebSocket
from typing import Optional
from jwt.exceptions import PyJWTError

from mindspace.utils.security import decode_access_token, get_token_user_id
import logging

logger = logging.getLogger(__name__)


class WebSocketAuthMiddleware:
    """Middleware to handle authentication for WebSocket connections"""

    async def authenticate(self, websocket: WebSocket) -> Optional[str]:
        """
        Authenticate a WebSocket connection using JWT token.
        Returns the authenticated user_id or None if authentication fails.
        """
        # Browsers cannot set headers on WebSocket handshakes, the token rides in the query
        token = websocket.query_params.get('token', '')

        if not token:
            logger.warning("No authentication token provided in WebSocket connection")
            return None

        try:
            payload = decode_access_token(token)
        except PyJWTError as e:
            logger.warning(f"JWT token validation failed: {str(e)}")
            return None

        user_id = get_token_user_id(payload)
        if user_id is None:
            logger.warning("Invalid authentication token - missing user ID")
        return user_id


# Create singleton instance
websocket_auth = WebSocketAuthMiddleware()
