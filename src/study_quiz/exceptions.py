"""Application exception hierarchy."""


class QuizAppError(Exception):
    """Base class for errors the front end can show to the user."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class QuizFormatError(QuizAppError):
    """Uploaded quiz text or a question failed validation."""


class UnsupportedFileError(QuizAppError):
    """The file type cannot be read or imported."""

    def __init__(self, filename: str, allowed: tuple[str, ...] = ()):
        message = f"Unsupported file type: {filename}"
        if allowed:
            message += f" (expected one of: {', '.join(allowed)})"
        super().__init__(message)


class NotAuthenticatedError(QuizAppError):
    """A write was attempted without a known user."""

    def __init__(self, message: str = "No user is signed in"):
        super().__init__(message)


class NotFoundError(QuizAppError):
    def __init__(self, kind: str, item_id):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class SessionStateError(QuizAppError):
    """A session runner transition was requested from the wrong state."""


class InvalidAnswerError(QuizAppError):
    def __init__(self, option_index: int, option_count: int):
        super().__init__(
            f"Answer {option_index} is out of range for a question with {option_count} options"
        )


class GenerationError(QuizAppError):
    """Question generation from a document failed."""
