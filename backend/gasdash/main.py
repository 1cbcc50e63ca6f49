from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gasdash import config
from gasdash.api.routers import health, reports, work_hours
from gasdash.pocketbase import create_backend_client
from gasdash.session import backend_session_middleware

config.configure_logging()

app = FastAPI(title="Gas Survey Dashboard API", version="0.1.0")

# リクエスト毎に PocketBase クライアントを生成（テストでは差し替え）
app.state.backend_factory = create_backend_client

app.middleware("http")(backend_session_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router,     prefix="/health", tags=["health"])
app.include_router(reports.router,    prefix="/api/v1", tags=["reports"])
app.include_router(work_hours.router, prefix="/api/v1", tags=["work-hours"])
