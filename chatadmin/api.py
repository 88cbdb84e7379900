from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .log import setup_logging
from .memory import TTLStore
from .services import state
from .services.exceptions import ServiceError
from .services.tokens import TokenCache
from .routes.system import router as system_router

setup_logging()
log = logging.getLogger("chatadmin.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.scheduler.start()
    log.info("Moderation expiry scheduler running")
    yield
    app.state.scheduler.stop()


def validation_exception_handler(request, exc):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def service_error_handler(request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(store: TTLStore | None = None, token_cache: TokenCache | None = None) -> FastAPI:
    """Build the application together with the state it owns.

    ``store`` and ``token_cache`` may be injected; by default they are built
    from the environment configuration.
    """
    app = FastAPI(lifespan=lifespan)
    store = store or state.create_store()
    app.state.store = store
    app.state.scheduler = store.scheduler
    app.state.policy = state.create_policy(store)
    app.state.token_cache = token_cache or state.create_token_cache(state.connect_redis())

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.include_router(system_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
