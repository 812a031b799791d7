"""Client-side palace session: state, local persistence, and user actions.

The session talks to ``/api/generate-story`` through a ``StoryClient`` and
keeps one JSON blob under the ``mental-palace`` key of a ``PalaceStorage``.
State is saved explicitly once after every successful start or choice; a
failed request leaves the previous state untouched.
"""

from __future__ import annotations

import json
import logging
import os
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from prompts import build_choice_prompt, build_opening_prompt

log = logging.getLogger("palace")

STORAGE_KEY = "mental-palace"
DEFAULT_PALACE_NAME = "Mon Palais Mental"
CLIENT_TIMEOUT = 90  # seconds

MSG_NAME_REQUIRED = "Veuillez entrer un nom pour votre palais"
MSG_SERVER_ERROR = "Erreur serveur"
MSG_CONNECTION_ERROR = "Erreur de génération. Vérifiez votre connexion."
MSG_SAVE_ERROR = "Erreur de sauvegarde"
MSG_RESET_CONFIRM = "Êtes-vous sûr de vouloir recommencer ce palais ? Toute progression sera perdue."


class GenerationError(Exception):
    """The endpoint could not produce a scene; message is user-facing."""


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass
class HistoryEntry:
    story: str
    choice: str | None
    timestamp: int  # epoch milliseconds

    def to_dict(self) -> dict:
        return {"story": self.story, "choice": self.choice, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> HistoryEntry:
        return cls(
            story=data.get("story", ""),
            choice=data.get("choice"),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class SessionState:
    story: str = ""
    choices: list[str] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    palace_name: str = DEFAULT_PALACE_NAME
    memory_tip: str = ""

    def to_dict(self) -> dict:
        return {
            "story": self.story,
            "choices": list(self.choices),
            "history": [h.to_dict() for h in self.history],
            "palaceName": self.palace_name,
            "memoryTip": self.memory_tip,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionState:
        return cls(
            story=data.get("story") or "",
            choices=list(data.get("choices") or []),
            history=[HistoryEntry.from_dict(h) for h in data.get("history") or [] if isinstance(h, dict)],
            palace_name=data.get("palaceName") or DEFAULT_PALACE_NAME,
            memory_tip=data.get("memoryTip") or "",
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class PalaceStorage:
    """One JSON blob per key in a directory, overwritten wholesale."""

    def __init__(self, storage_dir: str, key: str = STORAGE_KEY):
        self.storage_dir = storage_dir
        self.key = key

    @property
    def path(self) -> str:
        return os.path.join(self.storage_dir, f"{self.key}.json")

    def load(self) -> dict | None:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.error("palace_storage: cannot read %s — %s", self.path, e)
            return None
        return data if isinstance(data, dict) else None

    def save(self, data: dict):
        os.makedirs(self.storage_dir, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def remove(self):
        if os.path.exists(self.path):
            os.remove(self.path)


# ---------------------------------------------------------------------------
# Endpoint client
# ---------------------------------------------------------------------------


class StoryClient:
    """POSTs generation requests to a running palace server."""

    def __init__(self, base_url: str, timeout: float = CLIENT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def generate(self, prompt: str, choices: list[str] | None = None) -> dict:
        body: dict = {"prompt": prompt}
        if choices is not None:
            body["choices"] = choices
        req = urllib.request.Request(
            f"{self.base_url}/api/generate-story",
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raise GenerationError(_error_message(e.read()) or MSG_SERVER_ERROR) from e
        except (urllib.error.URLError, json.JSONDecodeError, TimeoutError) as e:
            log.error("story_client: %s", e)
            raise GenerationError(MSG_CONNECTION_ERROR) from e


def _error_message(raw: bytes) -> str:
    try:
        data = json.loads(raw.decode("utf-8", errors="replace"))
    except json.JSONDecodeError:
        return ""
    return data.get("error", "") if isinstance(data, dict) else ""


# ---------------------------------------------------------------------------
# Session controller
# ---------------------------------------------------------------------------


class PalaceSession:
    def __init__(self, client, storage: PalaceStorage, confirm: Callable[[str], bool]):
        self.client = client
        self.storage = storage
        self.confirm = confirm
        self.state = SessionState()
        self.loading = False
        self.error = ""

    def restore(self) -> bool:
        """Load the saved session, if any. Called once at startup."""
        data = self.storage.load()
        if data is None:
            return False
        self.state = SessionState.from_dict(data)
        return True

    def save(self) -> bool:
        blob = self.state.to_dict()
        blob["lastSaved"] = datetime.now(timezone.utc).isoformat()
        try:
            self.storage.save(blob)
        except OSError as e:
            log.error("palace_session: save failed — %s", e)
            self.error = MSG_SAVE_ERROR
            return False
        self.error = ""
        return True

    def _request(self, prompt: str, choices: list[str] | None = None) -> dict | None:
        self.loading = True
        self.error = ""
        try:
            return self.client.generate(prompt, choices)
        except GenerationError as e:
            self.error = str(e) or MSG_CONNECTION_ERROR
            return None
        finally:
            self.loading = False

    def start(self) -> bool:
        name = self.state.palace_name.strip()
        if not name:
            self.error = MSG_NAME_REQUIRED
            return False
        if self.loading:
            return False

        data = self._request(build_opening_prompt(name))
        if data is None:
            return False

        story = data.get("story", "")
        self.state.story = story
        self.state.choices = list(data.get("choices") or [])
        self.state.memory_tip = data.get("memoryTip") or ""
        self.state.history = [HistoryEntry(story=story, choice=None, timestamp=_now_ms())]
        self.save()
        return True

    def choose(self, choice: str) -> bool:
        if self.loading:
            return False

        prior = [h.choice for h in self.state.history if h.choice]
        data = self._request(build_choice_prompt(self.state.story, choice), prior + [choice])
        if data is None:
            return False

        story = data.get("story", "")
        self.state.story = story
        self.state.choices = list(data.get("choices") or [])
        self.state.memory_tip = data.get("memoryTip") or ""
        self.state.history.append(HistoryEntry(story=story, choice=choice, timestamp=_now_ms()))
        self.save()
        return True

    def reset(self) -> bool:
        if not self.confirm(MSG_RESET_CONFIRM):
            return False
        self.state = SessionState(palace_name=self.state.palace_name)
        self.error = ""
        self.storage.remove()
        return True
