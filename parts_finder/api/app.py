"""FastAPI boundary exposing the batch parts search.

Run with uvicorn's factory mode:

    uvicorn parts_finder.api.app:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from parts_finder.models.config import FinderConfig
from parts_finder.models.data_models import DamageItem
from parts_finder.pipeline.cache import MemoryCacheStore
from parts_finder.pipeline.finder import PartsFinder
from parts_finder.pipeline.output import JSONOutputFormatter


class PartRequest(BaseModel):
    """One damaged part in a search request."""
    damage_id: str
    part_name: str = Field(min_length=1)


class PartsSearchRequest(BaseModel):
    """Body of ``POST /parts-search``."""
    parts: List[PartRequest] = Field(default_factory=list)
    year: Optional[Union[int, str]] = None
    make: Optional[str] = None
    model: Optional[str] = None


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(
    config: Optional[FinderConfig] = None,
    finder: Optional[PartsFinder] = None,
) -> FastAPI:
    """
    Create the parts search API.

    Args:
        config: Finder configuration; defaults plus environment when omitted
        finder: Pre-built PartsFinder (tests inject one wired to a mock marketplace)

    Returns:
        FastAPI application owning the finder for its lifetime
    """
    finder = finder or PartsFinder(config)
    formatter = JSONOutputFormatter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await finder.start()
        try:
            yield
        finally:
            await finder.close()

    app = FastAPI(title="Parts Finder", lifespan=lifespan)
    app.state.finder = finder

    @app.post("/parts-search")
    async def parts_search(request: Request):
        """Price every requested part for one vehicle."""
        try:
            body = PartsSearchRequest.model_validate(await request.json())
        except (ValueError, ValidationError):
            return _error("Invalid request body", 400)

        if not body.parts:
            return _error("Parts list required", 400)
        if not body.year or not body.make or not body.model:
            return _error("Vehicle year, make, model required", 400)

        damages = [DamageItem(damage_id=p.damage_id, part_name=p.part_name) for p in body.parts]
        try:
            outcome = await finder.search(damages, body.year, body.make, body.model)
        except Exception as e:
            finder.logger.log("parts_search_failed", level=logging.ERROR, error=repr(e))
            return _error("Parts search failed", 500)
        return formatter.format(outcome)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        store = finder.coordinator.store
        return {
            "status": "healthy",
            "marketplace_configured": finder.config.ebay_configured,
            "cached_entries": len(store) if isinstance(store, MemoryCacheStore) else None,
        }

    return app
