# afkmover/core/errors.py


class AfkMoverError(Exception):
    """Base class for everything this package raises on purpose."""


class ConfigurationError(AfkMoverError):
    """Settings are missing/invalid, or the server layout doesn't match them. Not retryable."""


class SessionError(AfkMoverError):
    """The ServerQuery connection failed (transport, protocol, closed socket)."""


class SessionTimeout(SessionError):
    pass


class QueryError(SessionError):
    """
    The server answered a command with a non-zero error id.

    Example line: error id=512 msg=invalid\\sclientID
    """

    def __init__(self, error_id: int, message: str, command: str = ""):
        self.error_id = error_id
        self.message = message
        self.command = command
        super().__init__(f"{command or 'query'} failed: id={error_id} msg={message}")


class ClientInfoError(AfkMoverError):
    """A clientinfo record didn't carry a usable client_idle_time."""


class PollerGaveUp(AfkMoverError):
    def __init__(self, failures: int):
        self.failures = failures
        super().__init__(f"giving up after {failures} consecutive failed cycles")
