import math
from typing import Any, Dict, Optional, Tuple

MAX_PAGE_SIZE = 100


def page_window(page: Any = 1, limit: Any = 10) -> Tuple[int, int, int]:
    """
    페이지 번호와 크기를 검증하고 (page, limit, offset)을 반환합니다.

    Raises:
        ValueError: page < 1 이거나 limit이 1~100 범위를 벗어날 때.
    """
    try:
        page, limit = int(page), int(limit)
    except (TypeError, ValueError):
        raise ValueError("Page and limit must be integers.") from None
    if page < 1:
        raise ValueError("Page must be a positive integer.")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValueError(f"Limit must be between 1 and {MAX_PAGE_SIZE}.")
    return page, limit, (page - 1) * limit


def pagination_info(page: int, limit: int, total: int) -> Dict[str, int]:
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}


def clean_search(search: Optional[str]) -> Optional[str]:
    if search is None:
        return None
    search = search.strip()
    if not search:
        return None
    if len(search) > 100:
        raise ValueError("Search term must be between 1 and 100 characters.")
    return search


def validate_text(value: Optional[str], field: str, max_length: int, required: bool = True) -> Optional[str]:
    """필수 여부와 최대 길이를 검사한 뒤 앞뒤 공백을 제거한 값을 반환합니다."""
    if value is None:
        if required:
            raise ValueError(f"{field} is required.")
        return None
    value = str(value).strip()
    if required and not value:
        raise ValueError(f"{field} is required.")
    if len(value) > max_length:
        raise ValueError(f"{field} must be at most {max_length} characters.")
    return value


def parse_int(value: Any, field: str) -> int:
    """요청 본문의 정수 ID 값을 변환합니다. null, 객체, 불리언은 거부합니다."""
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer.") from None
