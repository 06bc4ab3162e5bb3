from .week_window import WeekWindow

__all__ = ["WeekWindow"]
