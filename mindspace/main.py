# mindspace/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindspace.config import settings
from mindspace.middleware.auth import AuthMiddleware
from mindspace.routes import (
    activity_stats,
    game_rooms,
    game_room_ws,
    game_rooms_ws,
    healthcheck,
)


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(title="Mindspace Activity Games")

    # CORS Middleware Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    # Add Authentication Middleware
    app.add_middleware(AuthMiddleware)

    # Include routers
    app.include_router(healthcheck.router)
    app.include_router(game_rooms.router)
    app.include_router(activity_stats.router)
    app.include_router(game_rooms_ws.router)
    app.include_router(game_room_ws.router)

    return app
