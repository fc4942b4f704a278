"""HTTP clients for the subject and opportunity services, with connection reuse and retry logic."""

import logging
from typing import Optional, Dict, Any, List, Iterable

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception,
    before_sleep_log
)

from core.config_loader import CollaboratorConfig
from core.errors import CollaboratorUnavailableError, EntityNotFoundError
from core.snapshots import SUBJECT, OPPORTUNITY

logger = logging.getLogger(__name__)


def _is_retryable_error(exc: Exception) -> bool:
    """
    Determine if an exception is retryable.

    Only retries on:
    - Timeouts
    - Server errors (5xx)
    - Connection errors without a response

    Does NOT retry on client errors (4xx).
    """
    if isinstance(exc, requests.Timeout):
        return True

    if isinstance(exc, requests.RequestException):
        response = getattr(exc, 'response', None)
        if response is not None:
            return response.status_code >= 500
        return True

    return False


def _unwrap_list(body: Any, key: str) -> List[Dict[str, Any]]:
    """Accept either a bare list or an object wrapping it under `key`."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        items = body.get(key)
        if items is None:
            items = body.get('data', [])
        if isinstance(items, list):
            return items
    raise ValueError(f"Expected a list or an object with '{key}', got {type(body).__name__}")


class CollaboratorClient:
    """
    Base client for a collaborator service.

    Responsibilities:
    - Own a requests.Session for connection reuse
    - Bound every request with a timeout
    - Retry idempotent GETs on timeouts, 5xx and connection errors
    - Translate failures into CollaboratorUnavailableError / EntityNotFoundError
    """

    service_name = "collaborator"

    def __init__(
        self,
        base_url: str,
        request_timeout_seconds: float = 10.0,
        request_retries: int = 2,
        retry_wait_seconds: float = 1.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.request_timeout_seconds = request_timeout_seconds
        self.session = session or requests.Session()

        self._get_with_retry = retry(
            stop=stop_after_attempt(max(1, request_retries)),
            wait=wait_fixed(retry_wait_seconds),
            retry=retry_if_exception(_is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )(self._get_once)

        logger.info(
            f"{self.__class__.__name__} initialized: base_url={self.base_url}, "
            f"timeout={request_timeout_seconds}s, attempts={max(1, request_retries)}"
        )

    def _get_once(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        response = self.session.get(
            f"{self.base_url}{path}",
            params=params,
            timeout=self.request_timeout_seconds
        )
        if response.status_code != 404:
            response.raise_for_status()
        return response

    def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        not_found: Optional[tuple] = None
    ) -> Any:
        """GET a JSON document.

        not_found is a (side, entity_id) pair; when given, a 404 raises
        EntityNotFoundError instead of CollaboratorUnavailableError.
        """
        try:
            response = self._get_with_retry(path, params)
        except requests.RequestException as e:
            raise CollaboratorUnavailableError(self.service_name, str(e)) from e

        if response.status_code == 404:
            if not_found is not None:
                raise EntityNotFoundError(*not_found)
            raise CollaboratorUnavailableError(self.service_name, f"404 for {path}")

        try:
            return response.json()
        except ValueError as e:
            raise CollaboratorUnavailableError(self.service_name, f"invalid JSON from {path}: {e}") from e

    def _get_list(self, path: str, params: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
        body = self._get_json(path, params)
        try:
            return _unwrap_list(body, key)
        except ValueError as e:
            raise CollaboratorUnavailableError(self.service_name, str(e)) from e

    def close(self):
        """Close the session and release resources."""
        self.session.close()
        logger.info(f"{self.__class__.__name__} session closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SubjectServiceClient(CollaboratorClient):
    """Read-only access to subject (user profile) records."""

    service_name = "subject-service"

    @classmethod
    def from_config(cls, config: CollaboratorConfig) -> "SubjectServiceClient":
        return cls(
            config.subjects_url,
            request_timeout_seconds=config.request_timeout_seconds,
            request_retries=config.request_retries,
            retry_wait_seconds=config.retry_wait_seconds
        )

    def get_subject(self, subject_id: str) -> Dict[str, Any]:
        return self._get_json(f"/api/users/{subject_id}", not_found=(SUBJECT, subject_id))

    def find_by_skills(self, skills: Iterable[str], limit: int) -> List[Dict[str, Any]]:
        params = {'limit': limit}
        skill_list = [s for s in skills if s]
        if skill_list:
            params['skills'] = ','.join(skill_list)
        return self._get_list("/api/users/by-skills", params, 'users')

    def recent(self, hours: int, limit: int) -> List[Dict[str, Any]]:
        return self._get_list("/api/users/recent", {'hours': hours, 'limit': limit}, 'users')


class OpportunityServiceClient(CollaboratorClient):
    """Read-only access to opportunity (project) records."""

    service_name = "opportunity-service"

    @classmethod
    def from_config(cls, config: CollaboratorConfig) -> "OpportunityServiceClient":
        return cls(
            config.opportunities_url,
            request_timeout_seconds=config.request_timeout_seconds,
            request_retries=config.request_retries,
            retry_wait_seconds=config.retry_wait_seconds
        )

    def get_opportunity(self, opportunity_id: str) -> Dict[str, Any]:
        return self._get_json(f"/api/projects/{opportunity_id}", not_found=(OPPORTUNITY, opportunity_id))

    def list_active(self, limit: int) -> List[Dict[str, Any]]:
        return self._get_list("/api/projects", {'status': 'active', 'limit': limit}, 'projects')

    def recent(self, hours: int, limit: int) -> List[Dict[str, Any]]:
        return self._get_list("/api/projects/recent", {'hours': hours, 'limit': limit}, 'projects')
