class AppError(Exception):
    """애플리케이션 예외의 기본 클래스"""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ValidationFailedError(AppError):
    """검사 범위를 벗어난 기록을 제출할 때 발생"""

    def __init__(self, errors: dict[str, str]) -> None:
        invalid = ", ".join(field for field, message in errors.items() if message)
        super().__init__("VALIDATION_001", f"유효하지 않은 필드: {invalid}")
        self.errors = errors


class AnalysisError(AppError):
    """AI 분석 호출 실패 시 발생"""


class ExtractionError(AppError):
    """문서 추출 실패 시 발생"""


class HistoryError(AppError):
    """이력 조회/비교 실패 시 발생"""
