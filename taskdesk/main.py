# taskdesk/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
import logging

from taskdesk.api.audit import router as audit_router
from taskdesk.api.auth import router as auth_router
from taskdesk.api.comment import router as comment_router
from taskdesk.api.cron import router as cron_router
from taskdesk.api.file import router as file_router
from taskdesk.api.notification import router as notification_router
from taskdesk.api.project import router as project_router
from taskdesk.api.report import router as report_router
from taskdesk.api.task import router as task_router
from taskdesk.api.user import router as user_router

from taskdesk.core.settings import settings
from taskdesk.core.exceptions import (
    AuthError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

# Логирование
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")

app = FastAPI(
    title="Taskdesk API",
    version="1.0.0",
    description="Project and task management backend with roles, audit log and notifications",
)

# Middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Stale-Views", "Content-Disposition"],
)

# Роутеры
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(project_router)
app.include_router(task_router)
app.include_router(comment_router)
app.include_router(file_router)
app.include_router(notification_router)
app.include_router(audit_router)
app.include_router(report_router)
app.include_router(cron_router)

# Health check & root
@app.get("/", tags=["Health"])
def root():
    return {"status": "Taskdesk API is running!"}

@app.get("/health", tags=["Health"])
def health():
    return {"ok": True}

@app.on_event("startup")
async def startup_event():
    logger.info("Starting Taskdesk API")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Stopping Taskdesk API")

# Доменные исключения -> HTTP-статусы

@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(
        status_code=401,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )

@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "taskdesk.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.DEBUG,
    )
