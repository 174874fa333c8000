# ellarises/core/errors.py
"""
领域异常：
- LoginRequired：无会话用户 → 由异常处理器转成 303 跳转 /login
- Forbidden：已登录但角色不在允许集合 → 403 forbidden 页面（不跳登录）
- DuplicateUsername：users.username 唯一约束冲突
- RecordNotFound：按 id 找不到记录
"""


class LoginRequired(Exception):
    pass


class Forbidden(Exception):
    # 携带会话用户：403 页面仍按已登录状态渲染导航
    def __init__(self, user):
        super().__init__(f"forbidden: {user.username}")
        self.user = user


class DuplicateUsername(Exception):
    def __init__(self, username: str):
        super().__init__(f"username already taken: {username}")
        self.username = username


class RecordNotFound(Exception):
    def __init__(self, kind: str, record_id):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id
