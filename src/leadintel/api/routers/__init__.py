from src.leadintel.api.routers.enrichment import router as enrichment_router

__all__ = ["enrichment_router"]
