# ellarises/api/forms.py
"""
HTML 表单解析小工具：空串 → None；非空但格式不对 → ValueError（由路由转成 400 / flash）。
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from fastapi import Request


async def form_fields(request: Request) -> Dict[str, str]:
    """依赖：把整张表单读成 {name: 去首尾空白的字符串}。"""
    form = await request.form()
    return {k: (v.strip() if isinstance(v, str) else v) for k, v in form.items()}


def blank_to_none(v: Optional[str]) -> Optional[str]:
    return v if v else None


def parse_date(v: Optional[str]) -> Optional[date]:
    return date.fromisoformat(v) if v else None


def parse_datetime(v: Optional[str]) -> Optional[datetime]:
    # <input type="datetime-local"> 提交 YYYY-MM-DDTHH:MM
    return datetime.fromisoformat(v) if v else None


def parse_int(v: Optional[str]) -> Optional[int]:
    return int(v) if v else None


def parse_amount(v: Optional[str]) -> Decimal:
    try:
        amount = Decimal(v or "")
    except InvalidOperation as e:
        raise ValueError(f"invalid amount: {v!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"invalid amount: {v!r}")
    return amount.quantize(Decimal("0.01"))
