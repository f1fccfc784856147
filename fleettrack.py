"""ASGI application entry point."""
from fleet.api import app

# Export for uvicorn: uvicorn fleettrack:app
__all__ = ["app"]

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
