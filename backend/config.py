"""Backend settings: defaults merged with {data_dir}/config.json, then env overrides."""

import hashlib
import json
import os
from pathlib import Path
from typing import Any

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm": {
        "provider_url": "https://api.openai.com",
        "api_key": "",
        "model": "gpt-4o-mini",
        "temperature": 0.7,
        "timeout": 60.0,
    },
    "users": [],
}


def hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


def _env_users(value: str) -> list[dict[str, str]]:
    """Parse VIOLET_USERS: comma-separated `username:secret` pairs."""
    users = []
    for pair in value.split(","):
        username, sep, secret = pair.strip().partition(":")
        if not sep or not username or not secret:
            continue
        users.append({"id": username, "username": username, "secret_hash": hash_secret(secret)})
    return users


def get_config(data_dir: Path) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values and env."""
    config: dict[str, Any] = {
        "llm": dict(_CONFIG_DEFAULTS["llm"]),
        "users": list(_CONFIG_DEFAULTS["users"]),
    }
    path = data_dir / "config.json"
    if path.is_file():
        stored = json.loads(path.read_text())
        if isinstance(stored.get("llm"), dict):
            config["llm"].update(stored["llm"])
        if "users" in stored:
            config["users"] = stored["users"]

    if os.getenv("OPENAI_API_KEY"):
        config["llm"]["api_key"] = os.environ["OPENAI_API_KEY"]
    if os.getenv("LLM_PROVIDER_URL"):
        config["llm"]["provider_url"] = os.environ["LLM_PROVIDER_URL"]
    if os.getenv("LLM_MODEL"):
        config["llm"]["model"] = os.environ["LLM_MODEL"]
    if os.getenv("VIOLET_USERS"):
        config["users"] = config["users"] + _env_users(os.environ["VIOLET_USERS"])
    return config
