# client/auth.py
import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class AuthState:
    is_authenticated: bool = False
    user: Optional[Dict[str, Any]] = None
    hotel: Optional[Dict[str, Any]] = None
    admin: Optional[Dict[str, Any]] = None
    role: Optional[str] = None  # "hotel" or "admin"


Listener = Callable[[AuthState], None]


class AuthStore:
    """
    Holds the logged-in staff/admin profile for one client and notifies
    subscribers whenever it changes. Optionally persisted to a JSON file.
    """

    def __init__(self, http: httpx.Client, storage_path: Optional[str] = None):
        self.http = http
        self.storage_path = storage_path
        self._state = AuthState()
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self.get_state())

    def _set(self, state: AuthState):
        self._state = state
        self._persist()
        self._notify()

    def get_state(self) -> AuthState:
        return replace(self._state)

    def _post(self, path: str, body: Dict[str, Any]):
        try:
            r = self.http.post(path, json=body)
        except httpx.HTTPError as e:
            logger.warning("Login request to %s failed: %s", path, e)
            return None, "Login failed"
        try:
            data = r.json()
        except ValueError:
            data = {}
        if r.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            return None, message if isinstance(message, str) else "Invalid credentials"
        return data, None

    def login_hotel(self, username: str, password: str) -> Dict[str, Any]:
        data, error = self._post("/api/auth/hotel/login", {"username": username, "password": password})
        if error:
            return {"success": False, "error": error}
        self._set(AuthState(is_authenticated=True, user=data.get("user"), hotel=data.get("hotel"), role="hotel"))
        return {"success": True}

    def login_admin(self, email: str, password: str) -> Dict[str, Any]:
        data, error = self._post("/api/auth/admin/login", {"email": email, "password": password})
        if error:
            return {"success": False, "error": error}
        self._set(AuthState(is_authenticated=True, admin=data.get("admin"), role="admin"))
        return {"success": True}

    def logout(self):
        self._set(AuthState())

    # ------------------------- persistence -------------------------
    def _persist(self):
        if not self.storage_path:
            return
        if not self._state.is_authenticated:
            if os.path.exists(self.storage_path):
                os.remove(self.storage_path)
            return
        with open(self.storage_path, "w", encoding="utf-8") as f:
            json.dump(asdict(self._state), f)

    def initialize(self):
        """Restore a persisted session; a corrupt file is discarded."""
        if not self.storage_path or not os.path.exists(self.storage_path):
            return
        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                self._state = AuthState(**json.load(f))
        except (ValueError, TypeError) as e:
            logger.error("Failed to load auth state: %s", e)
            os.remove(self.storage_path)
            return
        self._notify()
