"""
Run the onboarding API.
Usage: python3 run.py   (from the project root; HOST/PORT/DEBUG come from the environment or .env)
"""
import uvicorn

from config import settings

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,
    )
