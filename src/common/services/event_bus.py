import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List

from src.common.models.token_call import TokenCall, TokenCallStatus

logger = logging.getLogger(__name__)

TOKEN_CALL_VERIFIED = "token_call.verified"

EventHandler = Callable[[Any], Awaitable[None]]


@dataclass
class TokenCallVerifiedEvent:
    call: TokenCall
    user_id: int
    status: TokenCallStatus
    verification_timestamp: datetime


class EventBus:
    """
    프로세스 내부 이벤트 버스입니다.

    핸들러는 구독 순서대로 실행되며, 한 핸들러의 예외는 로그만 남기고 다음 핸들러를 계속 실행합니다.
    """

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def handlers(self, event_type: str) -> List[EventHandler]:
        return list(self._handlers.get(event_type, []))

    async def publish(self, event_type: str, payload: Any) -> int:
        """
        이벤트를 발행합니다.

        Returns:
            int: 예외 없이 처리를 마친 핸들러 수
        """
        succeeded = 0
        for handler in self._handlers.get(event_type, []):
            handler_name = getattr(handler, "__qualname__", repr(handler))
            try:
                await handler(payload)
                succeeded += 1
            except Exception as e:
                logger.error(f"이벤트 핸들러 오류: event={event_type}, handler={handler_name}, error={e}", exc_info=True)
        return succeeded
