"""Secret loading from a mounted secrets directory (e.g. Docker secrets)."""

import os

from .errors import SecretNotFoundError


def load_secret(secret_id: str, secrets_dir: str = "/run/secrets") -> str:
    """Read a secret file and return its stripped contents.

    Raises:
      SecretNotFoundError: when the file is missing, unreadable or empty.
    """
    path = os.path.join(secrets_dir, secret_id)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            value = fh.read().strip()
    except FileNotFoundError as exc:
        raise SecretNotFoundError(
            f"failed to load {secret_id} as it was not provided; "
            "make sure the container has the correct secrets defined"
        ) from exc
    except OSError as exc:
        raise SecretNotFoundError(f"failed to load {secret_id} due to an unexpected error: {exc}") from exc
    if not value:
        raise SecretNotFoundError(f"secret {secret_id} is empty")
    return value
