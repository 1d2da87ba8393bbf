import uvicorn

from f1_mcp.core.app_factory import create_app
from f1_mcp.core.config import settings

app = create_app(settings)


def run() -> None:
    """Serve the app with uvicorn (``f1-mcp-server`` console script)."""
    uvicorn.run(app, host=settings.app.host, port=settings.app.port, log_config=None)


if __name__ == "__main__":
    run()
