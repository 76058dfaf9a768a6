from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from .routes import router as admin_router, public_router as admin_public_router
from .ride_routes import router as ride_router
from .realtime import router as ws_router
from .logging_setup import configure_logging
from .config import settings
from .events import hub
from .store import store
from . import cache, lifecycle, services
import logging
import asyncio

# configure file logging for the app
configure_logging(console=__name__ == "__main__")
logger = logging.getLogger("ridelink.main")

app = FastAPI(title="RideLink - Ride Platform API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_public_router, prefix="/api/admin")
app.include_router(admin_router, prefix="/api/admin")
app.include_router(ride_router, prefix="/api")
app.include_router(ws_router)


def _error(status_code: int, message: str) -> JSONResponse:
    # the apps read `message`; FastAPI clients read `detail`
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, "detail": message})


@app.exception_handler(HTTPException)
async def _http_error(request: Request, exc: HTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(services.ServiceError)
async def _service_error(request: Request, exc: services.ServiceError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(lifecycle.InvalidTransition)
async def _invalid_transition(request: Request, exc: lifecycle.InvalidTransition):
    logger.info("invalid_transition: path=%s %s->%s", request.url.path, exc.current, exc.requested)
    return _error(409, str(exc))


@app.exception_handler(lifecycle.InvalidStatus)
async def _invalid_status(request: Request, exc: lifecycle.InvalidStatus):
    return _error(400, str(exc))


async def periodic_location_sweep():
    """Take drivers offline whose location expired, every LOCATION_SWEEP_INTERVAL_SEC."""
    while True:
        await asyncio.sleep(settings.LOCATION_SWEEP_INTERVAL_SEC)
        await services.sweep_stale_drivers()


@app.on_event("startup")
async def _startup():
    logger.info("Starting RideLink platform service")
    store.reset()
    hub.clear()
    app.state.sweep_task = asyncio.create_task(periodic_location_sweep())
    logger.info("Started periodic location sweep task")


@app.on_event("shutdown")
async def _shutdown():
    task = getattr(app.state, "sweep_task", None)
    if task is not None:
        task.cancel()
    logger.info("RideLink platform service stopped")


@app.get("/")
async def read_root():
    return {"message": "RideLink API"}


@app.get("/health")
async def health():
    return {"status": "ok", "redis": await cache.ping()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
