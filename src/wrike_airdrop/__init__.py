"""
Wrike Airdrop snap-in: extracts Wrike projects, tasks and users and republishes
them to DevRev through the Airdrop platform.
"""

from .version import __version__

__all__ = ["__version__"]
