# app/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from app.domain.category.generator import HttpCategoryGenerator
from app.domain.category.provider import CategoryProvider
from app.domain.session.machine import SessionMachine
from app.settings import get_settings
from app.store.memory_repo import InMemorySessionRepo
from app.store.redis_repo import RedisSessionRepo
from app.transport.admin import router as admin_router
from app.transport.ws import router as ws_router
from app.transport.ws_manager import WSManager

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.APP_NAME)
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]
    if "null" not in allowed_origins:
        allowed_origins.append("null")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        app.state.redis = None
        if settings.STORE_BACKEND == "memory":
            app.state.store = InMemorySessionRepo()
        else:
            r = Redis.from_url(settings.REDIS_URL, decode_responses=False)
            await r.ping()
            app.state.redis = r
            app.state.store = RedisSessionRepo(r, session_ttl_sec=settings.SESSION_TTL_SEC)

        generator = None
        if settings.CATEGORY_API_URL:
            generator = HttpCategoryGenerator(
                settings.CATEGORY_API_URL,
                timeout=settings.CATEGORY_API_TIMEOUT_SEC,
            )
        app.state.generator = generator

        app.state.machine = SessionMachine(
            app.state.store,
            CategoryProvider(generator=generator),
            max_retries=settings.MAX_UPDATE_RETRIES,
            require_ready=settings.REQUIRE_READY,
        )
        app.state.wsman = WSManager()
        app.state.leave_on_disconnect = settings.LEAVE_ON_DISCONNECT

        logger.info(
            "Started %s (store=%s, category generation %s)",
            settings.APP_NAME,
            settings.STORE_BACKEND,
            "on" if generator else "off",
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if app.state.generator is not None:
            await app.state.generator.aclose()
        r = app.state.redis
        if r is not None:
            await r.aclose()

    @app.get("/health")
    async def health():
        r = app.state.redis
        if r is None:
            return {"ok": True, "store": "memory"}
        pong = await r.ping()
        return {"ok": True, "store": "redis", "redis": str(pong)}

    app.include_router(ws_router)
    app.include_router(admin_router)
    return app


app = create_app()
