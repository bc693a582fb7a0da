"""
ChatRelayError - common base of every error returned to a caller.
"""


class ChatRelayError(Exception):
    code = "INTERNAL"
    retryable = False

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)
        self.message = message
