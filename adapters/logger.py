"""
로거 어댑터

LoggerPort를 표준 logging으로 구현합니다.
키워드 인자로 받은 문맥 값(채널 ID, 이벤트 이름 등)은 레코드의 extra로 전달하고
메시지 끝에 key=value 형태로 덧붙입니다.
exc_info 인자는 logging에 그대로 넘겨 트레이스백을 남깁니다.
"""

import logging
import sys
from typing import Any, Dict

from core.domain.ports import LoggerPort

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _context_suffix(context: Dict[str, Any]) -> str:
    if not context:
        return ""
    return " | " + " ".join(f"{key}={value}" for key, value in context.items())


class LoggerAdapter(LoggerPort):
    """표준 logging 기반 로거 어댑터"""

    def __init__(
        self,
        name: str = "message_sync",
        level: str = "INFO",
        format_string: str = DEFAULT_FORMAT,
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.getLevelName(level.upper()))

        # 같은 이름으로 여러 번 만들어도 핸들러는 하나
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter(format_string))
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        exc_info = context.pop("exc_info", None)
        context = {key: value for key, value in context.items() if value is not None}
        self.logger.log(level, message + _context_suffix(context), exc_info=exc_info, extra=context)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, kwargs)

