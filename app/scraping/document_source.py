"""
Document sources: fetch a menu page and return its normalized text.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

import requests

from app.scraping.config.models import MenuScrapingSettings
from app.scraping.errors import FetchError
from app.scraping.logging_utils import log_event
from app.scraping.parsing.document_cleaner import DocumentCleaner
from app.scraping.rate_limiter import DomainRateLimiter

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
MIN_ATTEMPT_TIMEOUT_SECONDS = 0.05


class DocumentSource(ABC):
    """
    Retrieves and normalizes one document per URL.
    """

    @abstractmethod
    def load(self, url: str) -> str:
        """
        Return the normalized document for `url`.

        Raises FetchError when the page cannot be retrieved or normalized.
        """


class HttpDocumentSource(DocumentSource):
    """
    requests-backed document source with per-host throttling and bounded retry.

    Every attempt and backoff fits inside `fetch_timeout_seconds`; no request
    is started once that budget is spent.

    Safe to call from several worker threads at once.
    """

    def __init__(
        self,
        *,
        settings: MenuScrapingSettings,
        session: requests.Session | None = None,
        rate_limiter: DomainRateLimiter | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._rate_limiter = rate_limiter or DomainRateLimiter(
            rate_limit_per_second=settings.rate_limit_per_second
        )
        self._headers = {"User-Agent": settings.user_agent}
        self._attempt_timeout = attempt_timeout_seconds(settings)

    def load(self, url: str) -> str:
        response = self._request_with_retry(url)
        try:
            cleaned = DocumentCleaner.clean(response.text)
        except Exception as exc:
            raise FetchError(f"Failed to normalize {url}: {exc}", url=url) from exc

        log_event(
            logger,
            logging.DEBUG,
            "document_loaded",
            url=url,
            status_code=response.status_code,
            characters=len(cleaned),
        )
        return cleaned

    def _request_with_retry(self, url: str) -> requests.Response:
        budget = self._settings.fetch_timeout_seconds
        deadline = time.monotonic() + budget
        last_error: Exception | None = None
        attempts = 0

        for attempt in range(self._settings.max_retries + 1):
            self._rate_limiter.wait(url)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break

            attempts += 1
            try:
                response = self._session.get(
                    url,
                    headers=self._headers,
                    timeout=min(self._attempt_timeout, remaining),
                    allow_redirects=True,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise FetchError(f"Failed to fetch {url}: {exc}", url=url) from exc
            except requests.RequestException as exc:
                raise FetchError(f"Failed to fetch {url}: {exc}", url=url) from exc

            if attempt >= self._settings.max_retries:
                break

            backoff_seconds = self._backoff_seconds(attempt)
            if time.monotonic() + backoff_seconds >= deadline:
                break
            log_event(
                logger,
                logging.WARNING,
                "document_fetch_retry",
                url=url,
                attempt=attempt + 1,
                backoff_seconds=backoff_seconds,
                error=str(last_error),
            )
            time.sleep(backoff_seconds)

        raise FetchError(
            f"Failed to fetch {url} within {budget:g}s after {attempts} attempt(s): {last_error}",
            url=url,
        )

    def _backoff_seconds(self, attempt: int) -> float:
        return self._settings.backoff_initial_seconds * (
            self._settings.backoff_multiplier**attempt
        )


def attempt_timeout_seconds(settings: MenuScrapingSettings) -> float:
    """
    Per-request timeout that fits every attempt and backoff into the fetch budget.
    """

    total_backoff = sum(
        settings.backoff_initial_seconds * settings.backoff_multiplier**attempt
        for attempt in range(settings.max_retries)
    )
    per_attempt = (settings.fetch_timeout_seconds - total_backoff) / (settings.max_retries + 1)
    return max(MIN_ATTEMPT_TIMEOUT_SECONDS, per_attempt)
