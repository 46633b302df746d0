"""
암호화 서비스 어댑터

연결된 계정의 액세스/리프레시 토큰을 저장 전에 암호화합니다.
설정의 암호화 키에서 PBKDF2로 Fernet 키를 유도합니다.
"""

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from core.domain.exceptions import TokenEncryptionError
from core.domain.ports import EncryptionServicePort, LoggerPort

DEFAULT_SALT = b"message_channel_token_salt"


def derive_fernet_key(secret: str, salt: bytes = DEFAULT_SALT, iterations: int = 100000) -> bytes:
    """비밀 값으로부터 Fernet 키를 유도합니다."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode()))


class EncryptionServiceAdapter(EncryptionServicePort):
    """Fernet 암호화 서비스 어댑터"""

    def __init__(self, encryption_key: str, logger: LoggerPort, salt: bytes = DEFAULT_SALT):
        self.logger = logger
        self._fernet = Fernet(derive_fernet_key(encryption_key, salt))

    async def encrypt(self, data: str) -> str:
        """토큰을 암호화합니다. 빈 값은 그대로 반환합니다."""
        if not data:
            return ""
        return self._fernet.encrypt(data.encode()).decode()

    async def decrypt(self, encrypted_data: str) -> str:
        """암호화된 토큰을 복호화합니다."""
        if not encrypted_data:
            return ""

        try:
            return self._fernet.decrypt(encrypted_data.encode()).decode()
        except InvalidToken as e:
            self.logger.error("토큰 복호화 실패: 암호화 키가 다르거나 값이 손상되었습니다")
            raise TokenEncryptionError("토큰 복호화 실패") from e
