from . import prometheus, scheduling

__all__ = ["prometheus", "scheduling"]
