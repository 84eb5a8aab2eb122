class HabitTrackerError(Exception):
    """Base error; ``status_code`` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HabitTrackerError):
    status_code = 400


class Unauthorized(HabitTrackerError):
    status_code = 401


class NotFound(HabitTrackerError):
    status_code = 404


class Conflict(HabitTrackerError):
    status_code = 409
