"""
应用入口：
- 加载 .env（先 .env.example 作默认，再用 .env 覆盖）
- lifespan 启动阶段：配置日志 → 打印 logger_config → 初始化数据库 → 清理过期会话
- 装载请求日志中间件、异常处理器、各页面路由
- 提供 /health
"""
from pathlib import Path
from dotenv import load_dotenv

# 1) 先加载 .env，务必在导入 logger / db 之前
ROOT = Path(__file__).resolve().parents[1]
ENV = ROOT / ".env"
ENV_EXAMPLE = ROOT / ".env.example"
if ENV_EXAMPLE.exists():
    load_dotenv(ENV_EXAMPLE, override=False)
if ENV.exists():
    load_dotenv(ENV, override=True)

# 2) 正常导入
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from sqlalchemy.exc import SQLAlchemyError
from ellarises.middleware.logging import RequestLoggingMiddleware
from ellarises.infra.logger import (
    configure_logging, emit, emit_error,
    LOG_TO_FILE, LOG_DIR, LOG_FILE, LOG_ROTATE_WHEN, LOG_BACKUP_COUNT,
)
from ellarises.infra.db import init_db, SessionLocal
from ellarises.core.errors import Forbidden, LoginRequired, RecordNotFound
from ellarises.api.rendering import templates, redirect, APP_TITLE
from ellarises.api import auth as auth_api
from ellarises.api import participants as participants_api
from ellarises.api import events as events_api
from ellarises.api import donations as donations_api
from ellarises.api import surveys as surveys_api
from ellarises.api import milestones as milestones_api
from ellarises.api import users as users_api
from ellarises.services.sessions import purge_expired

# 3) lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    configure_logging()
    emit(
        "logger_config",
        to_file=LOG_TO_FILE, dir=LOG_DIR, file=LOG_FILE,
        when=LOG_ROTATE_WHEN, backup=LOG_BACKUP_COUNT,
    )
    init_db()
    emit("db_init_done")
    with SessionLocal() as db:
        purge_expired(db)
    yield
    # shutdown
    emit("app_shutdown")

# 4) 创建应用并装配
app = FastAPI(title="Ella Rises Admin", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)


# 未登录：一律跳登录页（即便是角色受限路由）
@app.exception_handler(LoginRequired)
def _login_required(request: Request, exc: LoginRequired):
    return redirect("/login")


# 已登录但角色不符：独立的 403 页面，不跳登录
@app.exception_handler(Forbidden)
def _forbidden(request: Request, exc: Forbidden):
    return templates.TemplateResponse(
        request, "forbidden.html",
        {"title": APP_TITLE, "user": exc.user, "flashes": []},
        status_code=403,
    )


@app.exception_handler(RecordNotFound)
def _not_found(request: Request, exc: RecordNotFound):
    emit("record_not_found", kind=exc.kind, record_id=str(exc.record_id), path=request.url.path)
    return templates.TemplateResponse(
        request, "error.html",
        {"title": APP_TITLE, "user": None, "flashes": [],
         "error_message": f"{exc.kind.capitalize()} not found."},
        status_code=404,
    )


# 其余存储错误：记录日志，页面只给通用提示，不泄露驱动信息
@app.exception_handler(SQLAlchemyError)
def _storage_error(request: Request, exc: SQLAlchemyError):
    emit_error("db_error", path=request.url.path, error=type(exc).__name__)
    return templates.TemplateResponse(
        request, "error.html",
        {"title": APP_TITLE, "user": None, "flashes": [],
         "error_message": "Something went wrong. Please try again."},
        status_code=500,
    )


@app.get("/health")
def health():
    return {"ok": True}

# 路由（服务端渲染页面，不加 /api 前缀）
app.include_router(auth_api.router)
app.include_router(participants_api.router)
app.include_router(events_api.router)
app.include_router(donations_api.router)
app.include_router(surveys_api.router)
app.include_router(milestones_api.router)
app.include_router(users_api.router)
