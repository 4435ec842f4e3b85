"""콘텐츠 저장소 에러 분류"""


class ContentError(Exception):
    """모든 콘텐츠 에러의 기반 클래스"""


class ValidationError(ContentError):
    """필수 필드 누락, 잘못된 인자, 잘못된 훅 반환값"""


class InvalidArgumentError(ValidationError):
    """호출자가 넘긴 인자의 형태가 잘못됨"""


class InvalidHookResultError(ValidationError):
    """카테고리 훅이 약속된 타입을 반환하지 않음"""


class UnknownHookError(ValidationError):
    """폼 정의가 등록되지 않은 훅 이름을 참조함"""


class DuplicateCategoryError(ContentError):
    """같은 id의 카테고리가 이미 등록됨"""


class UnknownCategoryError(ContentError):
    def __init__(self, category_id: str | None) -> None:
        super().__init__(f'Category "{category_id}" is not a valid registered categoryId')
        self.category_id = category_id


class ItemNotFoundError(ContentError):
    def __init__(self, category_id: str, item_id: str) -> None:
        super().__init__(f'Item "{item_id}" not found in category "{category_id}"')
        self.category_id = category_id
        self.item_id = item_id


class MalformedDataFileError(ContentError):
    """데이터 파일의 최상위 값이 배열이 아님"""


class HookTimeoutError(ContentError):
    """비동기 훅이 제한 시간 안에 끝나지 않음"""
