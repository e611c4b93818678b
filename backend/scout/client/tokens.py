from typing import Optional


class InMemoryTokenStore:
    """
    Holds the bearer token for one client.

    `get` is what RequestExecutor receives as its token source; it is read
    at call time, so a login is visible to the very next request.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None
