"""Session settings resolved from ``RETRACE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

ENV_PREFIX = "RETRACE_"

# SGR sequences; the terminal layer passes them through untouched.
VALUE_STYLE = "\x1b[32m"
ERROR_STYLE = "\x1b[31m"
RESET_STYLE = "\x1b[0m"


@dataclass(frozen=True, slots=True)
class ReplSettings:
    """Knobs for the prompt loop and its terminal rendering."""

    primary_prompt: str = "> "
    continuation_prompt: str = ". "
    color: bool = True
    log_preset: Optional[str] = None
    greeting: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReplSettings":
        env = os.environ if environ is None else environ

        def lookup(name: str) -> Optional[str]:
            return env.get(f"{ENV_PREFIX}{name}")

        overrides: dict[str, object] = {}
        for env_name, attr in (
            ("PROMPT", "primary_prompt"),
            ("CONTINUATION_PROMPT", "continuation_prompt"),
            ("GREETING", "greeting"),
        ):
            raw = lookup(env_name)
            if raw is not None:
                overrides[attr] = raw
        if lookup("NO_COLOR") is not None or env.get("NO_COLOR") is not None:
            overrides["color"] = False
        preset = lookup("LOG_PRESET")
        if preset:
            overrides["log_preset"] = preset
        return cls(**overrides)  # type: ignore[arg-type]

    def with_overrides(self, **changes: object) -> "ReplSettings":
        cleaned = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **cleaned) if cleaned else self


__all__ = ["ReplSettings", "VALUE_STYLE", "ERROR_STYLE", "RESET_STYLE", "ENV_PREFIX"]
