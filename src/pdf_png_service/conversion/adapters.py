import json
import logging
import os
import subprocess
from pathlib import Path

import requests
from google.api_core import exceptions as gexc

from .errors import ConversionError, NotificationError, OrderStoreError, TransferError
from .filenames import image_path_for, local_name_for
from .interfaces import (
    NotifierGateway,
    OrderItemRecord,
    OrderStoreGateway,
    RasterizerGateway,
    RasterOptions,
    StorageGateway,
)

logger = logging.getLogger(__name__)


class GcsStorage(StorageGateway):
    def __init__(self, client=None, *, credentials_info: dict[str, object] | None = None) -> None:
        if client is None:
            from google.cloud import storage

            if credentials_info:
                from google.oauth2 import service_account

                creds = service_account.Credentials.from_service_account_info(credentials_info)
                client = storage.Client(credentials=creds, project=credentials_info.get("project_id"))
            else:
                client = storage.Client()
        self._client = client

    def download(self, bucket: str, key: str, dest_dir: str) -> str:
        destination = str(Path(dest_dir) / local_name_for(key))
        logger.info("Downloading gs://%s/%s to %s", bucket, key, destination)
        try:
            self._client.bucket(bucket).blob(key).download_to_filename(destination)
        except gexc.NotFound as e:
            raise TransferError(f"object gs://{bucket}/{key} not found") from e
        except gexc.Forbidden as e:
            raise TransferError(f"access denied reading gs://{bucket}/{key}") from e
        except (gexc.GoogleAPIError, OSError) as e:
            raise TransferError(f"download of gs://{bucket}/{key} failed: {e}") from e
        return destination

    def upload(self, local_path: str, bucket: str, key: str) -> None:
        logger.info("Uploading %s to gs://%s/%s", local_path, bucket, key)
        try:
            self._client.bucket(bucket).blob(key).upload_from_filename(local_path)
        except gexc.Forbidden as e:
            raise TransferError(f"access denied writing gs://{bucket}/{key}") from e
        except (gexc.GoogleAPIError, OSError) as e:
            raise TransferError(f"upload to gs://{bucket}/{key} failed: {e}") from e
        logger.info("Uploaded PNG to gs://%s/%s", bucket, key)


class GhostscriptRasterizer(RasterizerGateway):
    def __init__(self, executable: str = "gs", *, timeout_sec: float | None = None) -> None:
        self._executable = executable
        self._timeout = timeout_sec

    def command(self, input_path: str, output_path: str, options: RasterOptions) -> list[str]:
        # argv list, never a shell string: names like "case(O1)(I1).pdf" pass through untouched
        return [
            self._executable,
            "-dSAFER",
            "-dBATCH",
            "-dNOPAUSE",
            f"-sDEVICE={options.device}",
            f"-r{options.resolution_dpi}",
            f"-sOutputFile={output_path}",
            input_path,
        ]

    def render(self, input_path: str, options: RasterOptions) -> str:
        output_path = image_path_for(input_path)
        cmd = self.command(input_path, output_path, options)
        logger.info("Converting PDF to PNG: %s -> %s", input_path, output_path)
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self._timeout)
        except subprocess.TimeoutExpired as e:
            raise ConversionError(
                f"ghostscript timed out after {self._timeout}s",
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
            ) from e
        except OSError as e:
            raise ConversionError(f"failed to launch ghostscript ({self._executable}): {e}") from e

        if proc.returncode != 0:
            raise ConversionError(
                "ghostscript conversion failed",
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        if not os.path.exists(output_path):
            raise ConversionError(
                "ghostscript reported success but produced no image",
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        logger.info("Ghostscript conversion success")
        logger.debug("ghostscript stdout: %s", proc.stdout)
        logger.debug("ghostscript stderr: %s", proc.stderr)
        return output_path


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class FirebaseOrderStore(OrderStoreGateway):
    """Order items kept in the Realtime Database under one dashboard's models.

    Layout: ``dashboards/{dashboard}/models/orderItems/{orderItemId}`` with
    fields ``order``, ``orderItemStatus`` and ``pngExtracted``.
    """

    def __init__(self, models_ref, *, claims_child: str = "pngNotifications") -> None:
        self._models = models_ref
        self._claims_child = claims_child

    @classmethod
    def from_settings(
        cls,
        *,
        database_url: str,
        dashboard_id: str,
        credentials_info: dict[str, object] | None = None,
    ) -> "FirebaseOrderStore":
        import firebase_admin
        from firebase_admin import credentials, db

        try:
            app = firebase_admin.get_app()
        except ValueError:
            cred = credentials.Certificate(credentials_info) if credentials_info else credentials.ApplicationDefault()
            app = firebase_admin.initialize_app(cred, {"databaseURL": database_url})
        return cls(db.reference(f"dashboards/{dashboard_id}/models", app=app))

    def _items(self):
        return self._models.child("orderItems")

    def mark_extracted(self, order_item_id: str) -> None:
        from firebase_admin.exceptions import FirebaseError

        try:
            self._items().child(order_item_id).update({"pngExtracted": True})
        except (FirebaseError, ValueError) as e:
            raise OrderStoreError(f"could not mark orderItem {order_item_id} extracted: {e}") from e

    def list_items(self, order_id: str) -> list[OrderItemRecord]:
        from firebase_admin.exceptions import FirebaseError

        try:
            snapshot = self._items().order_by_child("order").equal_to(order_id).get()
        except (FirebaseError, ValueError) as e:
            raise OrderStoreError(f"could not query orderItems for order {order_id}: {e}") from e
        if not snapshot:
            return []
        if isinstance(snapshot, list):
            # numeric child keys come back as a sparse list
            snapshot = {str(i): v for i, v in enumerate(snapshot) if v is not None}
        return [
            OrderItemRecord.from_record(str(item_id), data)
            for item_id, data in snapshot.items()
            if isinstance(data, dict)
        ]

    def claim_notification(self, order_id: str) -> bool:
        from firebase_admin import db
        from firebase_admin.exceptions import FirebaseError

        won = False

        def _claim(current):
            nonlocal won
            # the callback may rerun on contention; only the last run counts
            won = not current
            return True if won else current

        try:
            self._models.child(self._claims_child).child(order_id).transaction(_claim)
        except (db.TransactionAbortedError, FirebaseError, ValueError) as e:
            raise OrderStoreError(f"could not claim notification for order {order_id}: {e}") from e
        return won


class WebhookNotifier(NotifierGateway):
    def __init__(
        self,
        url: str,
        *,
        params: dict[str, str] | None = None,
        timeout_sec: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._params = {k: v for k, v in (params or {}).items() if v}
        self._timeout = timeout_sec
        self._http = session or requests

    def notify(self, order_id: str) -> None:
        try:
            resp = self._http.post(
                self._url,
                params=self._params,
                json={"order": order_id},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f"webhook for order {order_id} failed: {e}") from e
        logger.info("Successfully sent order %s to the webhook. Response: %s", order_id, resp.text[:500])


def load_credentials_info(raw: str | None) -> dict[str, object] | None:
    """Parse an inline service-account JSON blob; empty means ambient credentials."""
    if not raw or not raw.strip():
        return None
    return json.loads(raw)
