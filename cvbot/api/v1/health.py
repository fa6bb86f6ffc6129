from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status and loaded data of the chatbot.")
async def health_check(request: Request):
    pipeline = getattr(request.app.state, "pipeline", None)
    stats = pipeline.stats() if pipeline is not None else {}
    return {
        "status": "healthy" if pipeline is not None else "starting",
        "chunks": stats.get("chunks", 0),
        "boundary_rules": stats.get("boundary", 0),
        "clusters": stats.get("canned", 0),
    }
