import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import DealsError
from app.core.logging_config import configure_logging
import app.models  # noqa: F401  # force model registration

from app.api.v1.plans import router as plans_router
from app.api.v1.deals import router as deals_router
from app.api.v1.redemptions import router as redemptions_router
from app.api.v1.me import router as me_router

logger = logging.getLogger(__name__)


async def deals_error_handler(request: Request, exc: DealsError) -> JSONResponse:
    # Business-rule refusals: one code + one message per kind
    logger.info("%s %s refused: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="IIG Deals API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DealsError, deals_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "iig-deals"}

    # Routers
    app.include_router(plans_router, prefix="/api/v1")
    app.include_router(deals_router, prefix="/api/v1")
    app.include_router(redemptions_router, prefix="/api/v1")
    app.include_router(me_router, prefix="/api/v1")

    logger.info("IIG Deals API configured (env=%s)", settings.ENVIRONMENT)
    return app


app = create_application()
