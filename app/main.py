from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.crud.router import router as crud_router
from app.core.config import settings
from app.core.errors import install_error_handlers
from app.core.http_hardening import configure_logging, install_http_hardening

configure_logging()

app = FastAPI(title=settings.APP_NAME, version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
install_http_hardening(app)
install_error_handlers(app)

app.include_router(crud_router, prefix="/api/crud", tags=["Crud"])

@app.get("/health")
def health():
    return {"status": "ok", "service": settings.APP_NAME, "env": settings.APP_ENV}
