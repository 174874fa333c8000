# ellarises/api/rendering.py
"""
服务端渲染的公共工具：
- templates：Jinja2 模板目录 ellarises/templates
- render()：注入当前会话用户与一次性 flash 消息后渲染
- flash()：往当前会话追加 flash（无会话时静默丢弃）
- redirect()：表单提交后统一 303 跳转（POST → GET）
"""
from pathlib import Path

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from ellarises.core.context import RequestContext
from ellarises.services import sessions as sess_svc

TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"
APP_TITLE = "Ella Rises"

templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


def render(request: Request, name: str, ctx: RequestContext, db: Session,
           status_code: int = 200, **context):
    flashes = sess_svc.pop_flashes(db, ctx.session_id) if ctx.session_id else []
    payload = {
        "title": APP_TITLE,
        "user": ctx.user,
        "flashes": flashes,
        "error_message": "",
        **context,
    }
    return templates.TemplateResponse(request, name, payload, status_code=status_code)


def flash(db: Session, ctx: RequestContext, category: str, message: str) -> None:
    sess_svc.push_flash(db, ctx.session_id, category, message)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)
