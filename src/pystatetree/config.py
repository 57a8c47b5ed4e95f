"""Store configuration for pystatetree."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pystatetree.exceptions import StoreConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Store configuration.

    Parameters
    ----------
    strict : bool
        Report every state change made outside a mutation handler.
        Strict mode installs a synchronous deep watcher on the whole
        state tree, so keep it off in production.
    devtools : bool
        Apply the devtool hook (when one is passed to the store).
    production : bool
        Skip every developer diagnostic (unknown types, duplicate
        registrations, strict-mode violations, ...). Functional
        behaviour is the same in both modes.
    """

    strict: bool = False
    devtools: bool = False
    production: bool = False

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from environment variables.

        Reads ``PYSTATETREE_STRICT``, ``PYSTATETREE_DEVTOOLS`` and
        ``PYSTATETREE_ENV`` (``production`` enables production mode).
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        StoreConfig
            Populated configuration.
        """
        env = os.environ
        unknown = set(overrides) - {field.name for field in dataclasses.fields(cls)}
        if unknown:
            raise StoreConfigError(f"unknown store config field(s): {', '.join(sorted(unknown))}")

        config_kwargs: dict[str, Any] = {
            "strict": _env_bool(env.get("PYSTATETREE_STRICT"), False),
            "devtools": _env_bool(env.get("PYSTATETREE_DEVTOOLS"), False),
        }

        env_name = env.get("PYSTATETREE_ENV")
        config_kwargs["production"] = env_name is not None and env_name.strip().lower() == "production"

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
