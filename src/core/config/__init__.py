"""
Configuration Module

This module provides centralized, type-safe configuration management
for the rotating photo cache service.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: System-wide constants, enums, and store key layout

Usage:
------
```python
from src.core.config import get_settings
from src.core.config.constants import CacheTier, Stage

settings = get_settings()
capacity = settings.cache.CACHE_SLOT_CAPACITY
tier = CacheTier.MAIN
```

Environment Variables:
---------------------
Configuration is loaded from environment variables or `.env` file:

```bash
# Store
STORE_BACKEND=redis
REDIS_HOST=localhost
REDIS_PORT=6379

# Upstream
UNSPLASH_ACCESS_KEY=...

# Cache
CACHE_SLOT_CAPACITY=30

# Logging
LOG_LEVEL=INFO
LOG_FORMAT=json
```
"""

from .settings import (
    Settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
