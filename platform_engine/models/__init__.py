from .base import Base
from .competition import Competition
from .material import Material

__all__ = ["Base", "Competition", "Material"]
