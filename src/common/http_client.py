"""Shared HTTP helpers used by the channel client and the archive downloader.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. Responses are returned as a ``FetchResult``
so callers can branch on a missing resource without inspecting error text.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from errors import NotFoundError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Outcome of a GET request that reached the server.

    ``text`` is decoded with the charset guessed by requests; ``content``
    holds the raw bytes for formats that count bytes or declare their own
    encoding.
    """

    url: str
    status_code: int
    text: str = ""
    content: bytes = b""

    @property
    def body(self) -> bytes:
        """Raw bytes of the answer, falling back to the UTF-8 encoded text."""
        return self.content or self.text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def not_found(self) -> bool:
        return self.status_code in (404, 410)

    def raise_for_status(self) -> "FetchResult":
        """Raise ``NotFoundError``/``TransportError`` unless the answer is 2xx."""
        if self.not_found:
            raise NotFoundError(self.url, self.status_code)
        if not self.ok:
            raise TransportError(self.url, self.status_code)
        return self


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def fetch(
    url: str,
    *,
    context: str,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> FetchResult:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "pear").
        headers: Optional request headers.
        **kwargs: Passed through to requests.get.

    Returns:
        FetchResult: status and body of the answer, whatever the status.

    Raises:
        TransportError: the server could not be reached or timed out.
    """
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = requests.get(
                url,
                timeout=Constants.REQUEST_TIMEOUT,
                headers=_default_headers(headers),
                **kwargs,
            )
        except requests.Timeout as exc:
            logger.error(
                "%s request timed out after %s seconds",
                context,
                Constants.REQUEST_TIMEOUT,
            )
            raise TransportError(url, reason="timed out") from exc
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error("%s connection error: %s", context, exc)
            raise TransportError(url, reason=str(exc)) from exc

    if is_debug_enabled(logger):
        logger.debug(
            "HTTP response",
            extra=extra_context(
                event="http_response",
                component="http_client",
                action="GET",
                outcome="success" if res.ok else "handled_non_2xx",
                status_code=res.status_code,
                duration_ms=t.duration_ms(),
                target=safe_target,
                context=context,
            ),
        )
    return FetchResult(url=url, status_code=res.status_code, text=res.text, content=res.content)


def download_file(url: str, dest: str, *, context: str) -> str:
    """Stream ``url`` into the file ``dest``.

    Returns:
        str: ``dest``.

    Raises:
        TransportError: connection failure or non-2xx answer.
    """
    safe_target = safe_url(url)
    logger.debug(
        "HTTP download",
        extra=extra_context(
            event="http_request",
            component="http_client",
            action="DOWNLOAD",
            target=safe_target,
            context=context,
        ),
    )
    try:
        with requests.get(
            url,
            timeout=Constants.REQUEST_TIMEOUT,
            headers=_default_headers(None),
            stream=True,
        ) as res:
            FetchResult(url=url, status_code=res.status_code).raise_for_status()
            os.makedirs(os.path.dirname(os.path.abspath(dest)), exist_ok=True)
            with open(dest, "wb") as fh:
                for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
    except requests.RequestException as exc:
        logger.error("%s download error: %s", context, exc)
        raise TransportError(url, reason=str(exc)) from exc
    return dest
