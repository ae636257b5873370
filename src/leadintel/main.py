from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.leadintel.api.deps import close_provider_registry
from src.leadintel.api.routers import enrichment_router


# Определение жизненного цикла
@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_provider_registry()

app = FastAPI(
    title="LeadIntel Enrichment",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

app.include_router(enrichment_router)

@app.get("/health")
def health():
    return {"status": "ok"}
