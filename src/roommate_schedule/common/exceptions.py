"""
This file contains custom, application-specific exceptions.
"""

class InvalidDayNameError(ValueError):
    """Raised when a string that is not one of the seven day names is used as one."""
    pass

class InvalidWeekParamError(ValueError):
    """Raised when a week parameter is not a valid YYYY-MM-DD calendar date."""
    pass

class UserNotFoundError(Exception):
    """Raised when a user ID or name is not found in the database."""
    pass

class ScheduleStoreUnavailableError(Exception):
    """Raised by services when the schedule store could not be reached."""
    def __init__(self, message: str, operation: str = "fetch"):
        super().__init__(message)
        self.operation = operation
