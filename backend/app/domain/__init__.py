from app.domain.interval import Interval

__all__ = ["Interval"]
