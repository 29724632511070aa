class CareLinkError(Exception):
    """도메인 예외의 기본 클래스"""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ValidationError(CareLinkError):
    """입력값 또는 측정값이 허용 범위를 벗어난 경우 발생"""

    def __init__(self, field: str, message: str) -> None:
        super().__init__("APT_VALID_001", f"{field}: {message}")
        self.field = field


class ConflictError(CareLinkError):
    """의사 일정이 겹칠 때 발생"""

    def __init__(self, message: str) -> None:
        super().__init__("APT_CONFLICT_001", message)


class StateError(CareLinkError):
    """허용되지 않는 상태 전이 시 발생"""

    def __init__(self, message: str) -> None:
        super().__init__("APT_STATE_001", message)


class NotFoundError(CareLinkError):
    """예약 또는 환자/의사를 찾을 수 없을 때 발생"""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__("APT_NOTFOUND_001", f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class OwnershipError(CareLinkError):
    """요청자가 예약의 소유자가 아닐 때 발생"""

    def __init__(self, message: str) -> None:
        super().__init__("APT_OWNER_001", message)


class NotificationError(CareLinkError):
    """알림 전송 실패 시 발생"""

    def __init__(self, message: str) -> None:
        super().__init__("NOTIFY_SEND_001", message)
