import base64


def basic_auth_header(username: str | None, password: str | None) -> str | None:
    """
    Build an HTTP Basic Authorization header value.

    Returns None unless both username and password are present.
    """
    if not (username and password):
        return None
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"
