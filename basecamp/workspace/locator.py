"""Clone address construction."""

from .models import ConnectionMode, DEFAULT_HOST


def locate(connection_mode: ConnectionMode, owner: str, name: str, host: str = DEFAULT_HOST) -> str:
    """
    Build the clone address of a repository.

    HTTPS yields ``https://<host>/<owner>/<name>``; SSH yields
    ``git@<host>:<owner>/<name>.git``.
    """
    if not owner:
        raise ValueError("owner must not be empty")
    if not name:
        raise ValueError("repository name must not be empty")
    if not host:
        raise ValueError("host must not be empty")

    mode = ConnectionMode.parse(connection_mode)
    if mode is ConnectionMode.HTTPS:
        return f"https://{host}/{owner}/{name}"
    return f"git@{host}:{owner}/{name}.git"
