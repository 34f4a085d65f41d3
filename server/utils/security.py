# 安全工具（JWT令牌）
# 令牌由身份服务签发，本服务只负责校验；create 系列方法供身份服务和测试使用

import jwt
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional


class JWTManager:
    """
    JWT令牌管理器
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256",
                 access_token_expire_minutes: int = 1440):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    def create_access_token(self, data: Dict[str, Any]) -> str:
        """
        创建访问令牌

        Args:
            data: 要编码的数据（通常包含 user_id, role）

        Returns:
            JWT令牌字符串
        """
        to_encode = data.copy()

        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=self.access_token_expire_minutes)
        to_encode.update({"exp": expire, "iat": now})

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        验证JWT令牌

        Args:
            token: JWT令牌字符串

        Returns:
            解码后的数据，验证失败返回None
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            # 令牌过期
            return None
        except jwt.InvalidTokenError:
            # 令牌无效
            return None

    def create_token(self, data: Dict[str, Any]) -> str:
        """
        创建令牌（create_access_token的别名）
        """
        return self.create_access_token(data)

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        解码令牌（verify_token的别名）
        """
        return self.verify_token(token)
