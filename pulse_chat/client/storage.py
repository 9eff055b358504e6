"""Durable client state: the session token, its username and the server URL.

Kept in one JSON file so a restarted client resumes the same session.
"""
import json
from typing import Any, Dict, Optional

from .config import STATE_FILE

STORAGE_FILE = STATE_FILE


def load_state() -> Dict[str, Any]:
    if not STORAGE_FILE.is_file():
        return {}
    return json.loads(STORAGE_FILE.read_text(encoding="utf-8"))


def save_state(data: Dict[str, Any]) -> None:
    STORAGE_FILE.parent.mkdir(parents=True, exist_ok=True)
    STORAGE_FILE.write_text(json.dumps(data, indent=2), encoding="utf-8")


def store_auth(token: str, username: str) -> None:
    state = load_state()
    state["token"] = token
    state["username"] = username
    save_state(state)


def clear_auth() -> None:
    state = load_state()
    for key in ["token", "username"]:
        state.pop(key, None)
    save_state(state)


def get_token() -> Optional[str]:
    return load_state().get("token")


def get_username() -> Optional[str]:
    return load_state().get("username")


def store_server_url(url: str) -> None:
    state = load_state()
    state["server_url"] = url
    save_state(state)


def get_server_url() -> Optional[str]:
    return load_state().get("server_url")
