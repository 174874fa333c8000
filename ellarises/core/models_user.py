"""定义 Role（封闭枚举：manager|member）与 User ORM 实体：
id/username/password/level。

- level 列存原系统沿用的角色代码（"M" / "U"）。
- username 区分大小写，唯一性由唯一索引在存储层保证。
- password 列既可能是 bcrypt 哈希，也可能是待迁移的历史明文；
  读取时由 core.security.parse_credential 显式区分，不在此处推断。"""
from enum import Enum

from sqlalchemy import Column, Integer, String, Enum as SAEnum, Index
from ellarises.core.models import Base


class Role(str, Enum):
    manager = "M"
    member = "U"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def from_label(cls, text: str) -> "Role | None":
        """按展示名（不区分大小写）反查角色；查不到返回 None。"""
        for role in cls:
            if role.label.lower() == (text or "").strip().lower():
                return role
        return None


_LABELS = {Role.manager: "Manager", Role.member: "Member"}

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False)
    password = Column(String(255), nullable=False)
    level = Column(
        SAEnum(Role, values_callable=lambda e: [r.value for r in e], name="user_level"),
        nullable=False,
        default=Role.member,
    )


# 唯一性保障：并发注册同名用户时只允许一条成功
Index("ix_users_username_unique", User.username, unique=True)
