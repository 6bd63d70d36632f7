"""JSON file storage for user profiles.

Each user gets a directory under the base path holding the free-text lore
that is injected into prompts and the RPG-style stats the Scribe updates:

    {base}/
      users/
        {user_id}/
          lore.txt        ← plain text, grows with [SCRIBE ENTRY ...] blocks
          stats.json      ← UserStats
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from pathlib import Path
from typing import Any

from violet_eightfold.models import IntegrationResult, UserStats

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


class ProfileStore:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._users = base_path / "users"
        self._users.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _user_dir(self, user_id: str) -> Path:
        safe = _SAFE_ID.sub("_", user_id).strip(".") or "_"
        path = self._users / safe
        path.mkdir(exist_ok=True)
        return path

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Lore
    # ------------------------------------------------------------------

    def get_lore(self, user_id: str) -> str:
        path = self._user_dir(user_id) / "lore.txt"
        if not path.exists():
            return ""
        return path.read_text()

    def save_lore(self, user_id: str, lore: str) -> None:
        (self._user_dir(user_id) / "lore.txt").write_text(lore)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self, user_id: str) -> UserStats:
        path = self._user_dir(user_id) / "stats.json"
        if not path.exists():
            return UserStats()
        return UserStats.model_validate(self._read_json(path))

    def save_stats(self, user_id: str, stats: UserStats) -> None:
        self._write_json(self._user_dir(user_id) / "stats.json", stats.model_dump(by_alias=True))

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------

    def apply_integration(
        self,
        user_id: str,
        result: IntegrationResult,
        today: date | None = None,
    ) -> tuple[str, UserStats]:
        """Merge a Scribe result into the stored profile.

        Lore entries are appended, quest and state replaced, and new
        milestones/attributes prepended so the newest shows first.
        """
        lore = self.get_lore(user_id)
        stats = self.get_stats(user_id)

        if result.new_lore_entry:
            stamp = (today or date.today()).isoformat()
            lore = f"{lore}\n\n[SCRIBE ENTRY {stamp}]: {result.new_lore_entry}"
            self.save_lore(user_id, lore)

        updates: dict[str, Any] = {}
        if result.updated_quest:
            updates["current_quest"] = result.updated_quest
        if result.updated_state:
            updates["state"] = result.updated_state
        if result.new_milestone:
            updates["milestones"] = [result.new_milestone, *stats.milestones]
        if result.new_attribute:
            updates["attributes"] = [result.new_attribute, *stats.attributes]
        if updates:
            stats = stats.model_copy(update=updates)
            self.save_stats(user_id, stats)

        logger.info("applied integration user=%s fields=%s", user_id, sorted(updates))
        return lore, stats
