#!/usr/bin/env python3
"""Run the FarmSync web server."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))


def main():
    import uvicorn

    from server.settings import settings

    host = settings.API_HOST
    port = settings.API_PORT
    reload = settings.API_RELOAD

    print(f"""
    FarmSync Server
      URL:        http://{host}:{port}
      API Docs:   http://{host}:{port}/docs
      Hot Reload: {reload}
    """)

    uvicorn.run(
        "server.app:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
