"""훅 저장소 — 폼 정의가 이름으로 참조하는 파생 함수 등록

폼 정의 파일은 코드를 담지 않는다. 대신 훅 슬롯마다 등록된 이름을 적고,
로더가 이 저장소에서 callable을 찾아 Category에 묶는다.
"""

from __future__ import annotations

from typing import Callable, Optional

from src.core.content.errors import UnknownHookError
from src.core.content.models import Hook
from src.core.logging import get_logger

logger = get_logger(__name__)


class HookRegistry:
    """이름 → 훅 callable 매핑."""

    def __init__(self) -> None:
        self._hooks: dict[str, Hook] = {}

    def register(self, name: str, hook: Hook) -> None:
        """훅 등록. 이미 존재하는 이름이면 경고 후 덮어쓴다."""
        if not callable(hook):
            raise TypeError(f"Hook {name!r} must be callable")
        if name in self._hooks:
            logger.warning("Overwriting existing hook: %s", name)
        self._hooks[name] = hook

    def hook(self, name: str) -> Callable[[Hook], Hook]:
        """데코레이터 형태의 등록.

            @hooks.hook("faq.preview")
            def faq_preview(form_data): ...
        """

        def decorator(fn: Hook) -> Hook:
            self.register(name, fn)
            return fn

        return decorator

    def get(self, name: str) -> Optional[Hook]:
        return self._hooks.get(name)

    def resolve(self, name: str, source: str = "?") -> Hook:
        """이름으로 조회. 없으면 UnknownHookError."""
        hook = self._hooks.get(name)
        if hook is None:
            raise UnknownHookError(
                f'Hook "{name}" is not registered (referenced in Content Form file: {source})'
            )
        return hook

    def names(self) -> list[str]:
        return sorted(self._hooks)

    def __contains__(self, name: object) -> bool:
        return name in self._hooks

    def __len__(self) -> int:
        return len(self._hooks)
