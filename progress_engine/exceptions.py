class ProgressEngineError(Exception):
    """Base class for errors raised by the progress engine"""


class NoProfileError(ProgressEngineError):
    """Raised when a rank update has no resolvable profile to operate on"""

    def __init__(self, user_id=None):
        self.user_id = user_id
        if user_id is None:
            message = "No rank profile: no user given"
        else:
            message = f"No rank profile for user {user_id}"
        super().__init__(message)


class InvalidQualityError(ProgressEngineError, ValueError):
    """Raised when a review quality rating is not an integer in 0..5"""

    def __init__(self, quality):
        self.quality = quality
        super().__init__(f"Quality must be an integer between 0 and 5, got {quality!r}")


class UserNotFoundError(ProgressEngineError):
    """Raised when a progress update names a user that does not exist"""

    def __init__(self, user_id=None):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class InvalidXPError(ProgressEngineError, ValueError):
    """Raised when an XP award is not a non-negative integer"""

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"XP amount must be a non-negative integer, got {amount!r}")
