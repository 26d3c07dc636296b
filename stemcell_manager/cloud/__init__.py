"""Cloud driver module.

This module handles:
- The create/delete contract the stemcell manager consumes
- A CPI executable backend for that contract
"""

from stemcell_manager.cloud.base import Cloud, CloudError
from stemcell_manager.cloud.cpi import CpiCloud

__all__ = ["Cloud", "CloudError", "CpiCloud"]
