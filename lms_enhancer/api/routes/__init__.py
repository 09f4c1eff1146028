from . import enhancement

__all__ = ["enhancement"]
