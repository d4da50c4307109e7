import sys
from contextlib import asynccontextmanager

import httpx
import redis.asyncio as redis
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, WebSocket
from loguru import logger
from strawberry.fastapi import GraphQLRouter

from config.credentials_config import load_credentials_config
from config.settings import Settings, settings as default_settings
from lsos_gateway.api import schema
from lsos_gateway.api.rest import router as rest_router
from lsos_gateway.api.rest.error_handlers import install_error_handlers
from lsos_gateway.api.rest.middleware import RequestLoggingMiddleware
from lsos_gateway.services import Services
from lsos_gateway.socket_relay import serve_socket

# Load environment variables
load_dotenv()

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "{extra[request_id]} | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str) -> None:
    logger.remove()
    logger.configure(extra={"request_id": "-"})
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the gateway app. Passing `services` skips Redis and HTTP client setup."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services is not None:
            app.state.services = services
            yield
            return

        configure_logging(settings.log_level)

        # Initialize Redis connection
        redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True
        )
        await redis_client.ping()
        http_client = httpx.AsyncClient(timeout=settings.webhook_timeout)

        app.state.services = Services.build(redis_client, http_client, settings)
        if settings.credentials_file:
            await app.state.services.credentials.provision(load_credentials_config(settings.credentials_file))
        else:
            logger.warning("No credentials file configured; only previously provisioned keys will authenticate")

        app.state.services.dispatcher.start()
        logger.info("Gateway ready (redis {}:{})", settings.redis_host, settings.redis_port)
        try:
            yield
        finally:
            await app.state.services.dispatcher.stop()
            await http_client.aclose()
            await redis_client.aclose()

    app = FastAPI(title="LSOS Gateway", lifespan=lifespan)
    if services is not None:
        app.state.services = services

    async def get_context():
        current = app.state.services
        return {
            "redis": current.redis,
            "stores": current.stores,
            "authenticator": current.authenticator,
        }

    # Create GraphQL router with context getter
    graphql_app = GraphQLRouter(schema, context_getter=get_context)

    app.add_middleware(RequestLoggingMiddleware)
    install_error_handlers(app)
    app.include_router(rest_router)
    app.include_router(graphql_app, prefix="/graphql")

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    @app.websocket("/socket")
    async def socket(websocket: WebSocket):
        current = app.state.services
        await serve_socket(websocket, current.redis, current.authenticator)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host=default_settings.host, port=default_settings.port, reload=default_settings.reload)
