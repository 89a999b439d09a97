from abc import ABC, abstractmethod


class NotificationChannel(ABC):
    """외부 알림 채널의 기본 클래스. name 은 NotificationService 의 채널 키로 쓰입니다."""

    name: str = ""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def send(self, recipient: str, message: str, **kwargs) -> bool:
        """
        recipient 에게 message 를 전송합니다. 실패는 예외 대신 False 로 알립니다.

        Args:
            recipient (str): 채널별 수신자 식별자 (텔레그램은 chat_id)
            message (str): 메시지 본문
        """
        pass
