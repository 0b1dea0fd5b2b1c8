"""Data 模块：配件目录仓库"""

from .repository import CATALOG_FILES, CatalogLoadError, CatalogRepository

__all__ = [
    "CATALOG_FILES",
    "CatalogLoadError",
    "CatalogRepository",
]
