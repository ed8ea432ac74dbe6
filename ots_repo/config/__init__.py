"""Configuration package.

Note: Settings are never constructed at package import time, which keeps test
collection free from environment requirements. Use
``ots_repo.config.settings.build_instance_settings`` where needed.
"""

__all__: list[str] = []
