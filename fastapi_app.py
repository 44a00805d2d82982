"""
ASGI entry point: ``uvicorn fastapi_app:app``.
"""
import os

import uvicorn

from treasury.api.main import create_app

app = create_app()

if __name__ == "__main__":
    # Run with uvicorn
    uvicorn.run(
        "fastapi_app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("APP_ENVIRONMENT", "development") == "development",
        log_level="info",
    )
