#!/usr/bin/env python3
"""
Hermes - Main Entry Point
Runs the FastAPI app hosting the trading session and its reports.
"""
import sys

from hermes.config import settings

if __name__ == "__main__":
    try:
        import uvicorn
        print("Starting Hermes...")
        print(f"API Docs: http://localhost:{settings.APP_PORT}/docs")
        print("Press Ctrl+C to stop.")

        uvicorn.run(
            "hermes.app:app",
            host="0.0.0.0",
            port=settings.APP_PORT,
            reload=False
        )
    except ImportError:
        print("Error: uvicorn is required. Install it with:")
        print("pip install uvicorn")
        sys.exit(1)
