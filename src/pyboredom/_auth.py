"""Stateless admin credential check."""

from __future__ import annotations

import secrets
from typing import Any

from pyboredom.config import BoredomConfig
from pyboredom.exceptions import AuthFailureError


def check_credentials(config: BoredomConfig, username: Any, password: Any) -> None:
    """Compare *username*/*password* against the configured admin pair.

    Raises
    ------
    AuthFailureError
        With ``missing=True`` when either value is absent or empty,
        otherwise when the pair does not match.
    """
    if not username or not password:
        raise AuthFailureError("Missing credentials", missing=True)
    if not isinstance(username, str) or not isinstance(password, str):
        raise AuthFailureError("Invalid credentials")

    # Evaluate both comparisons so timing does not reveal which one failed.
    user_ok = secrets.compare_digest(username.encode(), config.admin_username.encode())
    pass_ok = secrets.compare_digest(password.encode(), config.admin_password.encode())
    if not (user_ok and pass_ok):
        raise AuthFailureError("Invalid credentials")
