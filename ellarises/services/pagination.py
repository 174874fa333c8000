"""
模块职能：
- 列表页通用的分页 / 排序参数归一化。
- paginate(query, page)：先 count 再 limit/offset，页大小固定 50，total_pages 至少为 1。
"""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Query

PAGE_SIZE = 50


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    page: int = 1
    total: int = 0
    page_size: int = PAGE_SIZE

    @property
    def total_pages(self) -> int:
        return max(math.ceil(self.total / self.page_size), 1)


def normalize_page(raw: Optional[str]) -> int:
    try:
        return max(int(raw or 1), 1)
    except (TypeError, ValueError):
        return 1


def resolve_sort(sort_by: Optional[str], sort_order: Optional[str],
                 columns: Dict[str, Any], default_key: str, default_order: str) -> Tuple[str, str, Any]:
    """白名单映射排序列；未知 key / 方向回落到默认值。返回 (key, order, order_by 表达式)。"""
    key = sort_by if sort_by in columns else default_key
    order = (sort_order or "").lower()
    if order not in ("asc", "desc"):
        order = default_order
    col = columns[key]
    return key, order, (col.asc() if order == "asc" else col.desc())


def paginate(query: Query, page: int, page_size: int = PAGE_SIZE) -> Page:
    total = query.order_by(None).count()
    items = query.limit(page_size).offset((page - 1) * page_size).all()
    return Page(items=items, page=page, total=total, page_size=page_size)
