import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.api.v1 import quiz
from app.core.config import settings
from app.core.logging import setup_logging
from app.exceptions import BaseAppError
from app.models.base import get_engine

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="EasyTutor Quiz Backend API",
    description="EasyTutor 퀴즈 생성, 채점 및 성적 집계 백엔드 API",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quiz.router, prefix="/api/v1")


@app.exception_handler(BaseAppError)
async def app_exception_handler(request: Request, exc: BaseAppError):
    """퀴즈 생성/채점/조회 예외를 {"detail": message} 응답으로 변환"""
    logger.warning(
        f"{exc.__class__.__name__}: {exc.message} "
        f"(path={request.url.path}, status_code={exc.status_code})"
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """미처리 예외 (500)

    CORSMiddleware 바깥에서 처리되므로 CORS 헤더를 직접 추가합니다.
    """
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__} "
        f"(path={request.url.path}, method={request.method})",
        exc_info=True,
    )
    if settings.environment == "production":
        content = {"detail": "Internal Server Error"}
    else:
        content = {"detail": str(exc), "type": exc.__class__.__name__}

    response = JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
    origin = request.headers.get("origin")
    if origin and origin in settings.allowed_origins_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db():
    """데이터베이스 연결 상태 확인"""
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "disconnected"},
        )
    return {"status": "healthy", "database": "connected"}
