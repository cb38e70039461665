"""
Main FastAPI application for the Wrike Airdrop snap-in.
"""

import logging
import os
from typing import Any, Dict, List, Union

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ..functions import FUNCTION_REGISTRY
from ..version import __version__
from ..exceptions import AirdropError, DocumentError, EventValidationError

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Wrike Airdrop API",
    description="Host functions for extracting Wrike projects, tasks and users",
    version=__version__,
)

# Get allowed origins from environment variable
allowed_origins_str = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]

if not allowed_origins:
    # Default to allowing all for local dev if not set
    allowed_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Check the health of the application."""
    return {
        "status": "healthy",
        "version": __version__,
        "functions": sorted(FUNCTION_REGISTRY.keys()),
    }


@app.post("/handle/sync")
def handle_sync(events: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...)):
    """Invoke the host function named in the first event's execution metadata."""
    if isinstance(events, dict):
        events = [events]
    if not events:
        raise HTTPException(status_code=400, detail="No events provided")

    function_name = (events[0].get("execution_metadata") or {}).get("function_name")
    if not function_name:
        raise HTTPException(status_code=400, detail="execution_metadata.function_name is missing")

    function = FUNCTION_REGISTRY.get(function_name)
    if function is None:
        raise HTTPException(status_code=404, detail=f"Function {function_name} not found")

    try:
        logger.info(f"Invoking function {function_name}")
        return {"function_result": function(events)}
    except EventValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DocumentError as e:
        logger.error(f"Function {function_name} failed to load a document: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except AirdropError as e:
        logger.error(f"Function {function_name} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"An unexpected error occurred in function {function_name}: {e}")
        raise HTTPException(status_code=500, detail="An unexpected error occurred.")


if __name__ == "__main__":
    import uvicorn
    from ..core.config import setup_logging
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
