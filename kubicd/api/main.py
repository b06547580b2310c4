from typing import Optional

from fastapi import FastAPI

from kubicd import __version__
from kubicd.api.middleware import AuthMiddleware
from kubicd.api.routes import certificates, nodes
from kubicd.config import Settings, get_settings
from kubicd.modules.join import build_orchestrator


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="kubicd", version=__version__)
    app.state.settings = settings
    # one orchestrator per app so the join token cache outlives a request
    app.state.orchestrator = build_orchestrator(settings)
    app.add_middleware(AuthMiddleware, api_key=settings.api.key)

    app.include_router(nodes.router)
    app.include_router(certificates.router)
    return app
