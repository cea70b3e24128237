import logging
import secrets
import shutil
import tempfile
from pathlib import Path

from .interfaces import Workspace

logger = logging.getLogger(__name__)


def _safe_token(object_key: str) -> str:
    # keep well under the 255 byte name limit
    token = object_key.replace("/", "_").replace(".", "_")
    return token.encode("utf-8")[:120].decode("utf-8", "ignore")


def create_workspace(object_key: str, root: str | None = None) -> Workspace:
    """Create a fresh scratch directory for one storage event.

    The name combines a filesystem-safe form of the object key with a random
    suffix, so concurrent events never share a directory. Collisions are
    improbable, not impossible.
    """
    base = Path(root or tempfile.gettempdir())
    base.mkdir(parents=True, exist_ok=True)
    path = base / f"{_safe_token(object_key)}_{secrets.token_hex(8)}"
    path.mkdir()
    logger.info("Created workspace %s", path)
    return Workspace(path=str(path), object_key=object_key)


def delete_workspace(path: str) -> None:
    """Remove a workspace directory; safe on missing or partial paths."""
    shutil.rmtree(path, ignore_errors=True)
    logger.info("Deleted workspace %s", path)
