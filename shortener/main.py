from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shortener.config import settings
from shortener.database import init_db
from shortener.logging_config import configure_logging
from shortener.routers import admin_links, auth, health, links, realtime, redirect
from shortener.services.otp import otp_store
from shortener.services.realtime import ConnectionManager
from shortener.services.sweeper import ExpirySweeper


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    app.state.connections = ConnectionManager()
    sweeper = ExpirySweeper(otp_store, settings.otp_sweep_interval_seconds)
    sweeper.start()
    app.state.sweeper = sweeper
    try:
        yield
    finally:
        await sweeper.stop()
        await app.state.connections.close_all()


app = FastAPI(title="Deadman-Link API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Clients read {"message": ...}, not FastAPI's {"detail": ...}.
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


app.include_router(health.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(links.router, prefix="/api")
app.include_router(admin_links.router, prefix="/api")
app.include_router(realtime.router)


@app.get("/")
def root():
    return {"status": "Backend running"}


# Registered last so /{slug} never shadows the API routes.
app.include_router(redirect.router)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
