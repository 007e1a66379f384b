"""
Configuration subsystem for Beacon.

Static configuration is loaded from environment variables (with .env support)
when this package is imported. See ``beacon.core.config.config`` for the full
list of keys.

Usage
-----
```python
from beacon.core.config import Config

delay = Config.GUILD_COMMAND_DELETE_DELAY_SECONDS
```
"""

from beacon.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
