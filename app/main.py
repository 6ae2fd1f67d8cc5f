import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1 import questions, quiz_sessions
from app.core.config import settings
from app.core.logging import setup_logging
from app.exceptions import BaseAppError
from app.models.base import get_engine
from app.services.expiry_sweeper import run_expiry_sweeper

setup_logging()
logger = logging.getLogger(__name__)

API_TITLE = "Live Quiz Session API"
API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """세션 만료 정리 작업 시작/종료"""
    sweeper_task = None
    if settings.session_sweep_interval_seconds > 0:
        sweeper_task = asyncio.create_task(run_expiry_sweeper(settings.session_sweep_interval_seconds))
    yield
    if sweeper_task:
        sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper_task
        logger.info("세션 만료 정리 작업 종료")


app = FastAPI(
    title=API_TITLE,
    description="실시간 퀴즈 세션 (코드 참여, 문제 방송, 답안 제출, 결과 집계) 백엔드 API",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (questions.router, quiz_sessions.router):
    app.include_router(router, prefix="/api/v1")


def error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    """에러 응답 생성

    예외 핸들러 응답은 CORSMiddleware를 거치지 않을 수 있어 허용 origin이면 CORS 헤더를 직접 붙인다.
    """
    headers = {}
    origin = request.headers.get("origin")
    if origin and origin in settings.allowed_origins_list:
        headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": "*",
            "Access-Control-Allow-Headers": "*",
        }
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def request_context(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """요청 형식 오류 (422)"""
    # ctx에는 직렬화할 수 없는 예외 객체가 들어갈 수 있음
    errors = [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]
    logger.warning(f"요청 검증 오류: path={request.url.path}, errors={errors}")
    return error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, {"detail": errors})


@app.exception_handler(BaseAppError)
async def app_exception_handler(request: Request, exc: BaseAppError):
    """도메인 예외를 상태 코드와 메시지로 변환"""
    logger.warning(
        f"Application error: {exc.__class__.__name__} - {exc.message}",
        extra={**request_context(request), "status_code": exc.status_code},
    )
    return error_response(request, exc.status_code, {"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """DB 예외 (500, 프로덕션에서는 상세 숨김)"""
    logger.error(f"Database error: {exc.__class__.__name__}", exc_info=True, extra=request_context(request))
    detail = "Database error occurred" if settings.environment == "production" else str(exc)
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, {"detail": detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """처리되지 않은 예외 (500)"""
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}",
        exc_info=True,
        extra={**request_context(request), "query_params": dict(request.query_params)},
    )
    if settings.environment == "production":
        content = {"detail": "Internal Server Error"}
    else:
        content = {"detail": str(exc), "type": exc.__class__.__name__}
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)


@app.get("/")
async def root():
    return {"message": API_TITLE, "version": API_VERSION}


@app.get("/health")
async def health_check():
    """헬스 체크"""
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db():
    """DB 연결 확인 (실패 시 503)"""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "disconnected"},
        )
    return {"status": "healthy", "database": "connected"}
