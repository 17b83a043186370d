"""
Configuration subsystem for the users service.

Static configuration is loaded from environment variables (with .env
support) once at import time and validated on startup.

Usage
-----
```python
from src.core.config import Config

db_url = Config.DATABASE_URL
if Config.is_production():
    logger.info("Running in production mode")
```
"""

from src.core.config.config import Config, Environment

__all__ = [
    "Config",
    "Environment",
]
