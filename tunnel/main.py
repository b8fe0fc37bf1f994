import uvicorn

from tunnel.core.app_factory import create_app
from tunnel.core.config import settings

app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "tunnel.main:app",
        host=settings.app.host,
        port=settings.app.port,
        access_log=False,
    )
