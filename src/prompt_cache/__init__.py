"""
System Prompt Cache
Quantized context keys, TTL expiry, bounded eviction and per-user invalidation
"""

from .cache import CacheEntry, SystemPromptCache
from .config import CacheConfig, load_config
from .key_generator import CacheKeyGenerator, ContextDescriptor

__all__ = [
    'CacheConfig',
    'CacheEntry',
    'CacheKeyGenerator',
    'ContextDescriptor',
    'SystemPromptCache',
    'load_config',
]
