"""
模块职能：
- 会话负载的应用层加解密：密文入库，明文只在内存中使用。
"""
import base64, json, hashlib
from cryptography.fernet import Fernet
from ellarises.core.security import get_secret_key

def _derive_fernet_key(raw: str) -> bytes:
    h = hashlib.sha256(raw.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(h)

def _fernet() -> Fernet:
    return Fernet(_derive_fernet_key(get_secret_key()))

def encrypt_dict(d: dict) -> str:
    return _fernet().encrypt(json.dumps(d).encode()).decode()

def decrypt_str(s: str) -> dict:
    return json.loads(_fernet().decrypt(s.encode()).decode())
