"""HTTP API client for interacting with the chat server."""
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from ..shared.schemas import HistoryResponse, LoginRequest, LoginResponse, MessageRecord, RegisterRequest, UserOut
from .config import REQUEST_TIMEOUT
from .errors import NetworkFailure, RegistrationFailed, Unauthorized
from .storage import get_token


class APIClient:
    def __init__(self, base_url: str, token_getter: Callable[[], Optional[str]] = get_token):
        self.base_url = base_url.rstrip("/")
        self.token_getter = token_getter

    def _headers(self) -> Dict[str, str]:
        token = self.token_getter()
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get(self, path: str) -> Any:
        try:
            resp = requests.get(f"{self.base_url}{path}", headers=self._headers(), timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise NetworkFailure(f"GET {path} failed: {exc}") from exc
        if resp.status_code == 401:
            raise Unauthorized(f"GET {path} rejected the token")
        try:
            resp.raise_for_status()
            return resp.json()
        except requests.HTTPError as exc:
            raise NetworkFailure(f"GET {path} failed: HTTP {resp.status_code}") from exc
        except ValueError as exc:
            raise NetworkFailure(f"GET {path} returned invalid JSON") from exc

    @staticmethod
    def _error_message(resp: requests.Response, default: str) -> str:
        try:
            body = resp.json()
        except ValueError:
            return default
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return default

    def register(self, email: str, username: str, password: str) -> Dict[str, Any]:
        payload = RegisterRequest(email=email, username=username, password=password)
        try:
            resp = requests.post(f"{self.base_url}/register", json=payload.model_dump(), timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise NetworkFailure(f"POST /register failed: {exc}") from exc
        if 400 <= resp.status_code < 500:
            raise RegistrationFailed(self._error_message(resp, "Registration failed"))
        try:
            resp.raise_for_status()
            return resp.json()
        except requests.HTTPError as exc:
            raise NetworkFailure(f"POST /register failed: HTTP {resp.status_code}") from exc
        except ValueError:
            return {}

    def login(self, email: str, password: str) -> LoginResponse:
        payload = LoginRequest(email=email, password=password)
        try:
            resp = requests.post(f"{self.base_url}/login", json=payload.model_dump(), timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise NetworkFailure(f"POST /login failed: {exc}") from exc
        if 400 <= resp.status_code < 500:
            raise Unauthorized(self._error_message(resp, "Invalid credentials"))
        try:
            resp.raise_for_status()
            return LoginResponse.model_validate(resp.json())
        except requests.HTTPError as exc:
            raise NetworkFailure(f"POST /login failed: HTTP {resp.status_code}") from exc
        except (ValueError, ValidationError) as exc:
            raise NetworkFailure("POST /login returned an unexpected body") from exc

    def list_users(self) -> List[UserOut]:
        data = self._get("/users")
        try:
            return [UserOut.model_validate(u) for u in data]
        except (TypeError, ValidationError) as exc:
            raise NetworkFailure("GET /users returned an unexpected body") from exc

    def get_messages(self, contact: str) -> List[MessageRecord]:
        path = f"/get-messages/{quote(contact, safe='')}"
        data = self._get(path)
        try:
            history = HistoryResponse.model_validate(data)
        except ValidationError as exc:
            raise NetworkFailure(f"GET {path} returned an unexpected body") from exc
        if not history.success:
            raise NetworkFailure(f"GET {path} reported failure")
        return history.data
