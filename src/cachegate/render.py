"""Response rendering bridge -- maps a :class:`~cachegate.models.Response` to the output system.

After the engine answers a request on the command line,
:func:`format_gateway_response` writes the status line (and optionally the
headers) to stderr and routes the body through
:meth:`~cachegate.output.OutputManager.format_response`.
"""

from __future__ import annotations

from typing import Any

from cachegate.models import Response
from cachegate.output import get_output

_TEXTUAL_MARKERS = ("json", "xml", "html", "javascript", "css")


def format_gateway_response(response: Response, include_headers: bool = False) -> None:
    """Print *response* using the global output system.

    Args:
        response: The response returned by the engine.
        include_headers: Also print the response headers to stderr.
    """
    output = get_output()
    output.info(f"HTTP {response.status_code} {response.reason_phrase}".rstrip())
    if include_headers:
        for key, value in response.headers.items():
            output.info(f"{key}: {value}")

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, response.content_type or "text/plain")


def extract_response_data(response: Response) -> Any:
    """Extract a printable body from *response*.

    Attempts JSON first, then text for textual content types. Binary
    bodies (images) are summarised rather than dumped to the terminal.

    Returns:
        A JSON-decoded object, a ``str``, or ``None`` for an empty body.
    """
    if not response.body:
        return None

    try:
        return response.json_body()
    except ValueError:
        pass

    content_type = response.content_type.lower()
    if not content_type or content_type.startswith("text/") or any(
        marker in content_type for marker in _TEXTUAL_MARKERS
    ):
        return response.text
    return f"<{len(response.body)} bytes of {content_type}>"
