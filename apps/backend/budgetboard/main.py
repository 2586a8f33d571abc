from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import register_routers
from .core.config import settings
from .core.errors import register_exception_handlers
from .core.logs import RequestLogMiddleware, configure_logging

configure_logging()

app = FastAPI(title=settings.APP_NAME, version=__version__)

# CORS (대시보드 프론트엔드 연결)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogMiddleware)

register_exception_handlers(app)


@app.get("/health")
def health():
    return {"status": "ok"}


register_routers(app)
