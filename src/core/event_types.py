"""이벤트 유형 상수"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # content
    CONTENT_ITEMS_CHANGED = "content_items_changed"
