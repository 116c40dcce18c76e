from .speedrun import SpeedrunClient, absent_on_error

__all__ = ("SpeedrunClient", "absent_on_error")
