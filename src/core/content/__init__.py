"""콘텐츠 저장소 Core — 순수 Python, DB 무관"""

from .errors import (
    ContentError,
    DuplicateCategoryError,
    HookTimeoutError,
    InvalidArgumentError,
    InvalidHookResultError,
    ItemNotFoundError,
    MalformedDataFileError,
    UnknownCategoryError,
    UnknownHookError,
    ValidationError,
)
from .hooks import HookRegistry
from .loader import CategoryLoader, CategoryRegistry, data_file_name
from .models import Category, CategoryHooks
from .store import CategoryDataStore
from .transformer import to_external, to_external_many

__all__ = [
    "ContentError",
    "DuplicateCategoryError",
    "HookTimeoutError",
    "InvalidArgumentError",
    "InvalidHookResultError",
    "ItemNotFoundError",
    "MalformedDataFileError",
    "UnknownCategoryError",
    "UnknownHookError",
    "ValidationError",
    "HookRegistry",
    "CategoryLoader",
    "CategoryRegistry",
    "data_file_name",
    "Category",
    "CategoryHooks",
    "CategoryDataStore",
    "to_external",
    "to_external_many",
]
