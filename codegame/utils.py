import re

_SCHEME_PATTERN = re.compile(r"^.*://")


def trim_url(url: str) -> str:
    """Strip the scheme and a single trailing slash from a server URL.

    ``http://localhost:8080/`` becomes ``localhost:8080``; a base path such as
    ``/game`` is kept.
    """
    url = _SCHEME_PATTERN.sub("", url)
    if url.endswith("/"):
        url = url[:-1]
    return url
