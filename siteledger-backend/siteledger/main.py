import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from .config import settings
from .routers import dashboard, materials, payroll, reports
from .source import close_client, open_client


logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    open_client()  # shared client for the ledger backend
    app.state.ledger_api_url = settings.ledger_api_url
    try:
        yield
    finally:
        await close_client()

app = FastAPI(
    title="SiteLedger Backend",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

# The console UI is served from a different origin in development
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_origin_regex=r".*",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard.router)
app.include_router(reports.router)
app.include_router(materials.router)
app.include_router(payroll.router)

@app.get("/api/health")
def health():
    return {"ok": True, "source": settings.ledger_api_url}
