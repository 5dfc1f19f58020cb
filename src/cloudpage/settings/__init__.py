"""
Settings and configuration for Cloudpage.

Example:
    ```python
    from cloudpage.settings import CloudpageConfig

    config = CloudpageConfig.from_file("~/.cloudpage/config.yaml")
    print(config.root)
    ```
"""

from cloudpage.settings.config import CloudpageConfig

__all__ = [
    "CloudpageConfig",
]
