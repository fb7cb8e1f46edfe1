import logging

from fastapi import FastAPI

from pokedrive.api.domain import router as domain_router
from pokedrive.api.drive import router as drive_router
from pokedrive.core.dependencies import get_domain_controller

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Pokémon Drive",
    version="0.1.0",
    description="PokéAPI catalog exposed as a read-only virtual folder of text files.",
)


@app.on_event("startup")
async def startup_event() -> None:
    """
    Build the services and pick up an existing host registration.
    """
    controller = get_domain_controller()
    logger.info(f"Domain {controller.domain.identifier!r} connected: {controller.is_connected}")


@app.get("/health")
async def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}


app.include_router(drive_router, prefix="/drive", tags=["drive"])
app.include_router(domain_router, prefix="/domain", tags=["domain"])


if __name__ == "__main__":
    """
    Allow running `python -m pokedrive.main` to start the Uvicorn development server.
    """
    import uvicorn

    uvicorn.run(
        "pokedrive.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
