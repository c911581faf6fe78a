"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class GenerationFailedError(BaseAppError):
    """문제 생성 결과를 사용할 수 없을 때 발생하는 예외 (502)"""

    def __init__(self, message: str = "AI 응답을 처리할 수 없습니다. 학습 자료를 단순화해서 다시 시도해주세요."):
        super().__init__(message, status_code=502)


class AllCredentialsExhaustedError(BaseAppError):
    """사용 가능한 모든 API 키가 실패했을 때 발생하는 예외 (503)

    관리자 보고용으로 키별 실패 로그를 순서대로 보관한다.
    """

    def __init__(self, logs: list[str]):
        self.logs = list(logs)
        super().__init__(
            "사용 가능한 모든 API 키가 사용량 제한에 걸렸거나 사용할 수 없습니다.",
            status_code=503,
        )

    @property
    def report(self) -> str:
        return "\n".join(self.logs)


class NoCredentialsConfiguredError(BaseAppError):
    """API 키가 하나도 설정되지 않았을 때 발생하는 예외 (403)"""

    def __init__(self, message: str = "API 키가 없습니다. 설정에서 키를 추가하거나 시스템 환경을 구성해주세요."):
        super().__init__(message, status_code=403)


class InvalidCredentialError(BaseAppError):
    """API 키 등록/삭제 요청이 잘못되었을 때 발생하는 예외 (400)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class InvalidSessionActionError(BaseAppError):
    """현재 화면에서 허용되지 않는 동작일 때 발생하는 예외 (409)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class AttemptNotFoundError(BaseAppError):
    """응시 기록을 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, attempt_id: str):
        super().__init__(f"응시 기록을 찾을 수 없습니다: {attempt_id}", status_code=404)


class StorageError(BaseAppError):
    """저장소 쓰기/읽기 실패"""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class StorageCapacityError(StorageError):
    """저장소 용량 초과 (507)"""

    def __init__(self, key: str, size: int, limit: int):
        self.key = key
        self.size = size
        self.limit = limit
        super().__init__(f"저장소 용량 초과: key={key}, size={size}, limit={limit}")
        self.status_code = 507
