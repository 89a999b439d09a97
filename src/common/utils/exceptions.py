class PriceHistoryError(Exception):
    """가격 이력 제공자(Birdeye)와 통신 중 발생하는 오류"""
    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(f"[{status_code}] {message}" if status_code else message)


class PriceHistoryRateLimitError(PriceHistoryError):
    """가격 이력 제공자의 요청 한도를 초과했을 때 발생하는 오류"""
    def __init__(self, message: str = "Rate limit exceeded fetching price history"):
        super().__init__(message, status_code=429)
