# Team context: cached reference material, reference library, prompt assembly.

from product_helper.context.assembler import (
    SECTION_SEPARATOR,
    build_dynamic_context,
    build_static_prompt,
)
from product_helper.context.cache import get_cache_status, load_cache, save_cache
from product_helper.context.library import ReferenceLibrary
from product_helper.context.models import (
    ActiveEpic,
    ActiveObjective,
    ActiveRepo,
    ActiveStory,
    CacheStatus,
    ContextCache,
    ReferenceObjective,
)

__all__ = [
    "SECTION_SEPARATOR",
    "ActiveEpic",
    "ActiveObjective",
    "ActiveRepo",
    "ActiveStory",
    "CacheStatus",
    "ContextCache",
    "ReferenceLibrary",
    "ReferenceObjective",
    "build_dynamic_context",
    "build_static_prompt",
    "get_cache_status",
    "load_cache",
    "save_cache",
]
